"""
Threat model for Global Sentinel.

This module provides the SQLAlchemy model for threat records.
"""

import enum
from datetime import datetime
from sqlalchemy import Column, String, Text, Integer, DateTime, Enum, JSON

from sentinel.core.database import Base


class ThreatType(str, enum.Enum):
    """Closed enumeration of threat categories."""
    CYBER = "Cyber"
    HEALTH = "Health"
    CLIMATE = "Climate"
    CONFLICT = "Conflict"
    ECONOMIC = "Economic"
    AI = "AI"

    @classmethod
    def values(cls):
        return [member.value for member in cls]


class ThreatStatus(str, enum.Enum):
    """Enumeration of threat lifecycle states."""
    ACTIVE = "active"
    MONITORING = "monitoring"
    RESOLVED = "resolved"


class Threat(Base):
    """
    Threat model representing one canonical threat record.
    """
    __tablename__ = "threats"

    id = Column(String(64), primary_key=True, index=True)
    title = Column(String(200), nullable=False, index=True)
    type = Column(Enum(ThreatType), nullable=False, index=True)
    severity = Column(Integer, nullable=False)  # 0-100
    summary = Column(Text, nullable=False)

    regions = Column(JSON, nullable=True)
    sources = Column(JSON, nullable=True)
    verifications = Column(JSON, nullable=True)
    simulations = Column(JSON, nullable=True)
    provenance = Column(String(50), nullable=True)

    timestamp = Column(String(64), nullable=False)  # ISO-8601 as reported
    status = Column(
        Enum(ThreatStatus),
        nullable=False,
        default=ThreatStatus.ACTIVE,
        index=True
    )

    # Crowd credibility
    votes_confirm = Column(Integer, nullable=False, default=0)
    votes_deny = Column(Integer, nullable=False, default=0)
    votes_skeptical = Column(Integer, nullable=False, default=0)
    credibility_score = Column(Integer, nullable=False, default=50)  # 0-100
    last_vote_timestamp = Column(String(64), nullable=True)

    # Compare-and-swap guard for vote updates
    version = Column(Integer, nullable=False, default=0)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Threat {self.id}: {self.title}>"

    def to_payload(self) -> dict:
        """Render the row in the canonical record layout."""
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type.value if isinstance(self.type, ThreatType) else self.type,
            "severity": self.severity,
            "summary": self.summary,
            "regions": self.regions,
            "sources": self.sources,
            "timestamp": self.timestamp,
            "status": self.status.value if isinstance(self.status, ThreatStatus) else self.status,
            "votes": {
                "confirm": self.votes_confirm,
                "deny": self.votes_deny,
                "skeptical": self.votes_skeptical,
            },
            "credibilityScore": self.credibility_score,
            "lastVoteTimestamp": self.last_vote_timestamp,
            "verifications": self.verifications,
            "simulations": self.simulations,
            "provenance": self.provenance,
        }
