"""
Threat candidate validator for Global Sentinel.

This module is the gate deciding whether a raw candidate may become a new
threat record. It is a pure function: it either returns or raises.
"""

from collections.abc import Mapping
from typing import Any, List

from sentinel.core.errors import ValidationError
from sentinel.models.threat import ThreatType
from sentinel.schemas.threat import RawCandidate, SEVERITY_MAX, SEVERITY_MIN
from sentinel.utils.helpers import to_number

REQUIRED_FIELDS = ("title", "type", "severity", "summary")


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return not value
    return False


def missing_fields(candidate: RawCandidate) -> List[str]:
    """
    List the required fields absent from a candidate, in declaration order.

    Args:
        candidate: Raw candidate mapping.

    Returns:
        Names of missing fields. ``severity = 0`` counts as present.
    """
    if not isinstance(candidate, Mapping):
        return list(REQUIRED_FIELDS)
    return [field for field in REQUIRED_FIELDS if _is_missing(candidate.get(field))]


def validate(candidate: RawCandidate) -> None:
    """
    Validate a raw threat candidate.

    Checks run in a fixed order and stop at the first failure: required
    fields, then severity range, then type membership.

    Args:
        candidate: Raw candidate mapping.

    Raises:
        ValidationError: With reason missing_fields, range_violation or invalid_type.
    """
    missing = missing_fields(candidate)
    if missing:
        raise ValidationError.missing_fields(missing)

    raw_severity = candidate["severity"]
    severity = to_number(raw_severity)
    if severity is None or not SEVERITY_MIN <= severity <= SEVERITY_MAX:
        raise ValidationError.range_violation("severity", raw_severity, SEVERITY_MIN, SEVERITY_MAX)

    threat_type = candidate["type"]
    if isinstance(threat_type, ThreatType):
        threat_type = threat_type.value
    if threat_type not in ThreatType.values():
        raise ValidationError.invalid_type(threat_type, ThreatType.values())
