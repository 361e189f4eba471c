"""
Vote aggregator for Global Sentinel.

This module converts citizen votes into vote counters, a credibility score
and a lifecycle status.
"""

from typing import Any, Dict, Optional, Tuple

from sentinel.core.errors import InvalidVoteError
from sentinel.core.logging import logger
from sentinel.models.vote import VoteKind
from sentinel.schemas.threat import ThreatRecord, VoteAuditEntry, VoteResult
from sentinel.services.credibility import CredibilityPolicy
from sentinel.services.threat_store import ThreatStore
from sentinel.utils.helpers import anonymous_voter_id, utc_now_iso

# Binary vocabulary used by older clients
LEGACY_VOTE_ALIASES = {
    "credible": VoteKind.CONFIRM,
    "not_credible": VoteKind.DENY,
}


def parse_vote_kind(value: Any) -> VoteKind:
    """
    Map a public vote value onto a vote kind.

    Args:
        value: confirm, deny, skeptical, or a legacy credible/not_credible.

    Returns:
        The vote kind.

    Raises:
        InvalidVoteError: For anything else.
    """
    if isinstance(value, VoteKind):
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        if key in LEGACY_VOTE_ALIASES:
            return LEGACY_VOTE_ALIASES[key]
        try:
            return VoteKind(key)
        except ValueError:
            pass
    allowed = [kind.value for kind in VoteKind] + list(LEGACY_VOTE_ALIASES)
    raise InvalidVoteError(
        f"Vote must be one of: {', '.join(allowed)}",
        reason="unknown_vote_kind",
        value=value if isinstance(value, (str, int, float)) else repr(value),
    )


class VoteAggregator:
    """
    Records votes against existing threats.
    """

    def __init__(self, store: ThreatStore, policy: CredibilityPolicy = None):
        """
        Initialize the aggregator.

        Args:
            store: Shared threat store.
            policy: Scoring formula and status thresholds.
        """
        self.store = store
        self.policy = policy or CredibilityPolicy.from_settings()

    async def record_vote(
        self,
        threat_id: str,
        vote_kind: Any,
        voter_id: Optional[str] = None,
        reasoning: Optional[str] = None,
    ) -> VoteResult:
        """
        Record one vote.

        Args:
            threat_id: Threat being voted on.
            vote_kind: confirm, deny or skeptical (legacy aliases accepted).
            voter_id: Voter identifier; an anonymous pseudo-id is used when absent.
            reasoning: Optional free-text justification.

        Returns:
            Updated score, status and counters.

        Raises:
            InvalidVoteError: If the vote kind or threat id is unusable.
            NotFoundError: If the threat does not exist.
            StoreError: On persistence failure.
        """
        if not threat_id or not str(threat_id).strip():
            raise InvalidVoteError("Threat ID is required", reason="missing_threat_id")
        kind = parse_vote_kind(vote_kind)
        voter = voter_id or anonymous_voter_id()

        def mutate(record: ThreatRecord) -> Tuple[ThreatRecord, VoteAuditEntry]:
            now = utc_now_iso()
            votes = record.votes.incremented(kind)
            score = self.policy.score(votes)
            status = self.policy.next_status(record.status, votes, score)
            updated = record.model_copy(update={
                "votes": votes,
                "credibility_score": score,
                "status": status,
                "last_vote_timestamp": now,
            })
            audit = VoteAuditEntry(
                threat_id=record.id,
                voter_id=voter,
                vote_kind=kind,
                reasoning=reasoning,
                credibility_score=score,
                timestamp=now,
            )
            return updated, audit

        updated = await self.store.apply_vote(str(threat_id), mutate)

        logger.info(
            f"Vote recorded: {kind.value} on {updated.id} by {voter} -> "
            f"credibility {updated.credibility_score}, status {updated.status.value}"
        )
        return VoteResult(
            threat_id=updated.id,
            credibility_score=updated.credibility_score,
            status=updated.status,
            votes=updated.votes,
            last_vote_timestamp=updated.last_vote_timestamp,
        )

    async def get_votes(self, threat_id: str, limit: int = 100) -> Dict[str, Any]:
        """
        Current tally and audit trail of a threat.

        Args:
            threat_id: Threat id.
            limit: Maximum audit entries, newest first.

        Returns:
            Dict with votes, credibilityScore, status and audit entries.

        Raises:
            NotFoundError: If the threat does not exist.
        """
        record = await self.store.get(threat_id)
        audit = await self.store.list_votes(threat_id, limit=limit)
        return {
            "threatId": record.id,
            "votes": record.votes.model_dump(),
            "credibilityScore": record.credibility_score,
            "recomputedScore": self.policy.score(record.votes),
            "status": record.status.value,
            "lastVoteTimestamp": record.last_vote_timestamp,
            "audit": [entry.model_dump(mode="json", by_alias=True) for entry in audit],
        }
