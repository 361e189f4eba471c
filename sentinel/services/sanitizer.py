"""
Threat candidate sanitizer for Global Sentinel.

``normalize`` turns anything into the canonical record layout with safe
defaults. It never raises, and it does not enforce the type enumeration;
that is the validator's job.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Dict, List, Optional

from sentinel.models.threat import ThreatStatus, ThreatType
from sentinel.schemas.threat import (
    NEUTRAL_CREDIBILITY,
    RawCandidate,
    SEVERITY_MAX,
    SEVERITY_MIN,
    SUMMARY_MAX_LENGTH,
    TITLE_MAX_LENGTH,
)
from sentinel.utils.helpers import clamp, to_number, utc_now_iso

LIST_FIELDS = ("regions", "sources", "verifications", "simulations")
VOTE_FIELDS = ("confirm", "deny", "skeptical")
# Binary vocabulary used by older clients
LEGACY_VOTE_FIELDS = {"confirm": "credible", "deny": "not_credible"}


def _text(value: Any, max_length: int) -> str:
    if value is None:
        return ""
    return str(value)[:max_length]


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(item) for item in value if item is not None]


def _optional_string(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    text = str(value)
    return text if text.strip() else None


def _enum_value(value: Any) -> Any:
    if isinstance(value, (ThreatType, ThreatStatus)):
        return value.value
    return value


def _counter(value: Any) -> int:
    number = to_number(value)
    if number is None or number < 0:
        return 0
    return int(number)


def normalize_votes(value: Any) -> Dict[str, int]:
    """
    Coerce a votes structure into the three non-negative counters.

    Args:
        value: Anything; a mapping keeps its counters, everything else becomes zeros.

    Returns:
        Dict with confirm, deny and skeptical counts.
    """
    if not isinstance(value, Mapping):
        return {field: 0 for field in VOTE_FIELDS}

    votes = {}
    for field in VOTE_FIELDS:
        raw = value.get(field)
        if raw is None and field in LEGACY_VOTE_FIELDS:
            raw = value.get(LEGACY_VOTE_FIELDS[field])
        votes[field] = _counter(raw)
    return votes


def normalize(candidate: RawCandidate) -> Dict[str, Any]:
    """
    Sanitize a candidate into the canonical threat layout.

    Args:
        candidate: Raw candidate; non-mappings are treated as empty.

    Returns:
        Dict with every ThreatRecord key. ``id`` is None when the caller
        did not supply one.
    """
    if not isinstance(candidate, Mapping):
        candidate = {}

    severity = to_number(candidate.get("severity"))
    credibility = to_number(candidate.get("credibilityScore"))

    sanitized = {
        "id": _optional_string(candidate.get("id")),
        "title": _text(candidate.get("title"), TITLE_MAX_LENGTH),
        "type": _enum_value(candidate.get("type")),
        "severity": clamp(severity if severity is not None else SEVERITY_MIN, SEVERITY_MIN, SEVERITY_MAX),
        "summary": _text(candidate.get("summary"), SUMMARY_MAX_LENGTH),
        "timestamp": _optional_string(candidate.get("timestamp")) or utc_now_iso(),
        "status": _enum_value(candidate.get("status")) or ThreatStatus.ACTIVE.value,
        "votes": normalize_votes(candidate.get("votes")),
        "credibilityScore": (
            clamp(credibility, 0, 100) if credibility is not None else NEUTRAL_CREDIBILITY
        ),
        "lastVoteTimestamp": _optional_string(candidate.get("lastVoteTimestamp")),
        "provenance": _optional_string(candidate.get("provenance")),
    }
    for field in LIST_FIELDS:
        sanitized[field] = _string_list(candidate.get(field))

    return sanitized
