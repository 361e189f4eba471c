"""
Error taxonomy for Global Sentinel.

Every failure surfaced by the core carries a machine-readable kind, an
optional reason code and a human-readable message. The API layer turns
these into JSON error responses using ``status_code``.
"""

from typing import Any, Dict, List, Optional


class SentinelError(Exception):
    """Base class for all errors raised by the core."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str, reason: Optional[str] = None, **details: Any):
        super().__init__(message)
        self.message = message
        self.reason = reason
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize the error for API responses and per-item outcomes.

        Returns:
            Dict with kind, reason, message and any extra details.
        """
        payload = {"kind": self.kind, "reason": self.reason, "message": self.message}
        payload.update(self.details)
        return payload


class ValidationError(SentinelError):
    """Malformed or out-of-range input. Caller-correctable, never retried."""

    kind = "validation_error"
    status_code = 400

    MISSING_FIELDS = "missing_fields"
    RANGE_VIOLATION = "range_violation"
    INVALID_TYPE = "invalid_type"
    SCHEMA_VIOLATION = "schema_violation"

    @classmethod
    def missing_fields(cls, fields: List[str]) -> "ValidationError":
        return cls(
            f"Missing required fields: {', '.join(fields)}",
            reason=cls.MISSING_FIELDS,
            missing_fields=list(fields),
        )

    @classmethod
    def range_violation(cls, field: str, value: Any, low: int, high: int) -> "ValidationError":
        return cls(
            f"{field.capitalize()} must be between {low} and {high}",
            reason=cls.RANGE_VIOLATION,
            field=field,
            value=value if isinstance(value, (int, float, str)) else repr(value),
        )

    @classmethod
    def invalid_type(cls, value: Any, allowed: List[str]) -> "ValidationError":
        return cls(
            f"Invalid type. Must be one of: {', '.join(allowed)}",
            reason=cls.INVALID_TYPE,
            value=value if isinstance(value, (int, float, str)) else repr(value),
            allowed=list(allowed),
        )


class NotFoundError(SentinelError):
    """Reference to a threat id that does not exist."""

    kind = "not_found"
    status_code = 404

    def __init__(self, threat_id: str):
        super().__init__(f"Threat not found: {threat_id}", reason="unknown_threat", threat_id=threat_id)


class InvalidVoteError(SentinelError):
    """Vote request that cannot be applied (unknown kind, missing id)."""

    kind = "invalid_vote"
    status_code = 400


class ConflictError(SentinelError):
    """Ingestion with a caller-supplied id that is already taken."""

    kind = "conflict"
    status_code = 409

    def __init__(self, threat_id: str):
        super().__init__(
            f"Threat already exists: {threat_id}",
            reason="duplicate_id",
            threat_id=threat_id,
        )


class StoreError(SentinelError):
    """Underlying persistence failure. May be transient."""

    kind = "store_error"
    status_code = 503


class ForwardingError(SentinelError):
    """Collector-to-core submission failure for a single candidate."""

    kind = "forwarding_error"
    status_code = 502
