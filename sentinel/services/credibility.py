"""
Credibility policy for Global Sentinel.

The credibility score is a pure function of the three vote counters, so it
can always be recomputed from stored counts alone:

    score = round_half_up(100 * (confirm + p) / (confirm + deny + w * skeptical + 2p))

``p`` is a Laplace prior pulling small samples toward the neutral 50 and
``w`` is the weight of a skeptical vote relative to a deny.
"""

from dataclasses import dataclass

from sentinel.core.config import settings
from sentinel.models.threat import ThreatStatus
from sentinel.schemas.threat import NEUTRAL_CREDIBILITY, VoteTally
from sentinel.utils.helpers import clamp


@dataclass(frozen=True)
class CredibilityPolicy:
    """Scoring formula and vote-driven status transitions."""

    prior: float = 1.0
    skeptical_weight: float = 0.5
    min_votes_for_status: int = 5
    monitoring_threshold: int = 30
    reactivation_threshold: int = 60

    @classmethod
    def from_settings(cls) -> "CredibilityPolicy":
        return cls(
            prior=settings.CREDIBILITY_PRIOR,
            skeptical_weight=settings.SKEPTICAL_WEIGHT,
            min_votes_for_status=settings.STATUS_MIN_VOTES,
            monitoring_threshold=settings.MONITORING_THRESHOLD,
            reactivation_threshold=settings.REACTIVATION_THRESHOLD,
        )

    def score(self, votes: VoteTally) -> int:
        """
        Compute the credibility score for a tally.

        Args:
            votes: Current vote counters.

        Returns:
            Integer score in [0, 100]; 50 when there are no votes.
        """
        denominator = (
            votes.confirm
            + votes.deny
            + self.skeptical_weight * votes.skeptical
            + 2 * self.prior
        )
        if denominator <= 0:
            return NEUTRAL_CREDIBILITY
        return clamp(100.0 * (votes.confirm + self.prior) / denominator, 0, 100)

    def next_status(self, current: ThreatStatus, votes: VoteTally, score: int) -> ThreatStatus:
        """
        Decide the lifecycle status after a vote.

        Args:
            current: Status before the vote.
            votes: Counters after the vote.
            score: Score after the vote.

        Returns:
            New status. ``resolved`` is administrative and never left here.
        """
        current = ThreatStatus(current)
        if current == ThreatStatus.RESOLVED:
            return current
        if votes.total < self.min_votes_for_status:
            return current
        if score <= self.monitoring_threshold:
            return ThreatStatus.MONITORING
        if current == ThreatStatus.MONITORING and score >= self.reactivation_threshold:
            return ThreatStatus.ACTIVE
        return current
