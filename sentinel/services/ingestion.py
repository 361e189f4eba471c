"""
Ingestion pipeline for Global Sentinel.

This module turns raw candidates into stored threat records.
"""

import asyncio
from typing import Any, Dict, Iterable, List

from pydantic import ValidationError as SchemaValidationError

from sentinel.core.errors import SentinelError, ValidationError
from sentinel.core.logging import logger
from sentinel.models.threat import ThreatStatus
from sentinel.schemas.threat import IngestOutcome, RawCandidate, ThreatRecord, VoteTally
from sentinel.services.credibility import CredibilityPolicy
from sentinel.services.sanitizer import normalize
from sentinel.services.threat_store import ThreatStore
from sentinel.services.validator import validate
from sentinel.utils.helpers import generate_id


class IngestionPipeline:
    """
    Validates, sanitizes and commits threat candidates.

    The raw candidate is validated first so that clamping and defaults
    never hide a missing field or an out-of-range report; only then is it
    normalized into a record. Nothing is written when validation fails.
    """

    def __init__(self, store: ThreatStore, policy: CredibilityPolicy = None):
        """
        Initialize the pipeline.

        Args:
            store: Shared threat store.
            policy: Credibility policy used for the initial score.
        """
        self.store = store
        self.policy = policy or CredibilityPolicy.from_settings()

    def build_record(self, candidate: RawCandidate) -> ThreatRecord:
        """
        Validate a raw candidate and build the record that would be stored.

        Client-supplied votes, score, status and last vote time are ignored:
        a new record always starts active, unvoted and neutral.

        Args:
            candidate: Raw candidate.

        Returns:
            ThreatRecord with its final id.

        Raises:
            ValidationError: If the candidate is not acceptable.
        """
        validate(candidate)
        sanitized = normalize(candidate)

        votes = VoteTally()
        payload: Dict[str, Any] = dict(sanitized)
        payload.update({
            "id": sanitized["id"] or generate_id(),
            "status": ThreatStatus.ACTIVE,
            "votes": votes,
            "credibilityScore": self.policy.score(votes),
            "lastVoteTimestamp": None,
        })

        try:
            return ThreatRecord.model_validate(payload)
        except SchemaValidationError as e:
            raise ValidationError(
                f"Candidate does not match the threat schema: {e.errors()[0]['msg']}",
                reason=ValidationError.SCHEMA_VIOLATION,
                fields=[".".join(str(part) for part in error["loc"]) for error in e.errors()],
            ) from e

    async def ingest(self, candidate: RawCandidate) -> str:
        """
        Ingest a single candidate.

        Args:
            candidate: Raw candidate.

        Returns:
            The id of the stored record.

        Raises:
            ValidationError: If the candidate is rejected.
            ConflictError: If the supplied id already exists.
            StoreError: On persistence failure.
        """
        try:
            record = self.build_record(candidate)
        except ValidationError as e:
            logger.warning(f"Rejected threat candidate: {e.message}")
            raise

        await self.store.insert(record)
        logger.info(f"Ingested threat {record.id}: {record.title} ({record.type.value}, severity {record.severity})")
        return record.id

    async def _ingest_item(self, index: int, candidate: RawCandidate) -> IngestOutcome:
        try:
            threat_id = await self.ingest(candidate)
        except SentinelError as e:
            return IngestOutcome(index=index, success=False, error=e.to_dict())
        return IngestOutcome(index=index, success=True, id=threat_id)

    async def ingest_batch(self, candidates: Iterable[RawCandidate]) -> List[IngestOutcome]:
        """
        Ingest candidates independently of each other.

        One item's failure never blocks or rolls back another.

        Args:
            candidates: Raw candidates.

        Returns:
            One outcome per candidate, in input order.
        """
        items = list(candidates)
        outcomes = await asyncio.gather(
            *(self._ingest_item(index, candidate) for index, candidate in enumerate(items))
        )

        accepted = sum(1 for outcome in outcomes if outcome.success)
        logger.info(f"Batch ingestion complete: {accepted} accepted, {len(items) - accepted} rejected")
        return list(outcomes)
