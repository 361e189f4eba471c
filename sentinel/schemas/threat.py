"""
Pydantic schemas for Global Sentinel.

``RawCandidate`` is whatever a collector or API caller submits. Only a
``ThreatRecord`` (built by the ingestion pipeline after validation and
sanitization) can reach the store.
"""

from typing import Any, Dict, List, Mapping, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from sentinel.models.threat import ThreatStatus, ThreatType
from sentinel.models.vote import VoteKind

# Untyped, unsanitized, unvalidated input
RawCandidate = Mapping[str, Any]

TITLE_MAX_LENGTH = 200
SUMMARY_MAX_LENGTH = 1000
SEVERITY_MIN = 0
SEVERITY_MAX = 100
NEUTRAL_CREDIBILITY = 50


class VoteTally(BaseModel):
    """The three monotonic vote counters of a threat."""

    confirm: int = Field(0, ge=0)
    deny: int = Field(0, ge=0)
    skeptical: int = Field(0, ge=0)

    @property
    def total(self) -> int:
        return self.confirm + self.deny + self.skeptical

    def incremented(self, kind: VoteKind) -> "VoteTally":
        """Return a copy with the counter for ``kind`` increased by one."""
        field = VoteKind(kind).value
        return self.model_copy(update={field: getattr(self, field) + 1})


class ThreatRecord(BaseModel):
    """Canonical, validated threat record."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    type: ThreatType
    severity: int = Field(..., ge=SEVERITY_MIN, le=SEVERITY_MAX)
    summary: str = Field(..., min_length=1, max_length=SUMMARY_MAX_LENGTH)
    regions: List[str] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=list)
    timestamp: str
    status: ThreatStatus = ThreatStatus.ACTIVE
    votes: VoteTally = Field(default_factory=VoteTally)
    credibility_score: int = Field(
        NEUTRAL_CREDIBILITY, ge=0, le=100, alias="credibilityScore"
    )
    last_vote_timestamp: Optional[str] = Field(None, alias="lastVoteTimestamp")
    verifications: List[str] = Field(default_factory=list)
    simulations: List[str] = Field(default_factory=list)
    provenance: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """Serialize using the persisted/wire key names."""
        return self.model_dump(mode="json", by_alias=True)


class VoteAuditEntry(BaseModel):
    """One accepted vote as recorded in the audit trail."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    threat_id: str = Field(..., alias="threatId")
    voter_id: str = Field(..., alias="voterId")
    vote_kind: VoteKind = Field(..., alias="voteKind")
    reasoning: Optional[str] = None
    credibility_score: int = Field(..., ge=0, le=100, alias="credibilityScore")
    timestamp: str


class VoteResult(BaseModel):
    """Outcome of an accepted vote."""

    model_config = ConfigDict(populate_by_name=True)

    threat_id: str = Field(..., alias="threatId")
    credibility_score: int = Field(..., alias="credibilityScore")
    status: ThreatStatus
    votes: VoteTally
    last_vote_timestamp: Optional[str] = Field(None, alias="lastVoteTimestamp")


class VoteRequest(BaseModel):
    """Vote payload accepted by the API. ``userId`` and ``voteKind`` are legacy spellings."""

    threat_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("threatId", "threat_id")
    )
    vote: Optional[str] = Field(
        None, validation_alias=AliasChoices("vote", "voteKind", "vote_kind")
    )
    voter_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("voterId", "userId", "voter_id")
    )
    reasoning: Optional[str] = Field(None, max_length=2000)


class IngestOutcome(BaseModel):
    """Per-item result of a batch ingestion."""

    index: int
    success: bool
    id: Optional[str] = None
    error: Optional[Dict[str, Any]] = None


class ForwardOutcome(BaseModel):
    """Per-item result of forwarding a candidate from a collector to the core."""

    title: Optional[str] = None
    success: bool
    threat_id: Optional[str] = None
    attempts: int = 0
    error: Optional[Dict[str, Any]] = None
