"""
Vote audit model for Global Sentinel.

This module provides the SQLAlchemy model for the per-vote audit trail.
"""

import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, Text, Integer, ForeignKey, DateTime, Enum

from sentinel.core.database import Base


class VoteKind(str, enum.Enum):
    """Enumeration of citizen vote kinds."""
    CONFIRM = "confirm"
    DENY = "deny"
    SKEPTICAL = "skeptical"


class VoteAudit(Base):
    """
    VoteAudit model recording every accepted vote for later accountability.
    """
    __tablename__ = "vote_audit"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    threat_id = Column(String(64), ForeignKey("threats.id"), nullable=False, index=True)
    voter_id = Column(String(100), nullable=False, index=True)  # anonymous but trackable

    vote_kind = Column(
        Enum(VoteKind),
        nullable=False,
        index=True
    )
    reasoning = Column(Text, nullable=True)
    credibility_score = Column(Integer, nullable=False)  # score right after this vote

    timestamp = Column(String(64), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<VoteAudit {self.id}: {self.vote_kind.value} on {self.threat_id}>"
