"""
Helper utilities for Global Sentinel.

This module provides general utility functions.
"""

import math
import re
import time
import uuid
from typing import Any, Optional
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

from bs4 import BeautifulSoup


def generate_id() -> str:
    """
    Generate a unique ID.

    Returns:
        Unique ID string.
    """
    return str(uuid.uuid4())


def anonymous_voter_id() -> str:
    """Pseudo-id for votes submitted without a voter id."""
    return f"citizen_{uuid.uuid4().hex[:12]}"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def to_number(value: Any) -> Optional[float]:
    """
    Coerce a loosely-typed value to a finite float.

    Args:
        value: int, float or numeric string. Booleans are not numbers here.

    Returns:
        The number, or None if the value is not numeric.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def clamp(value: float, low: int, high: int) -> int:
    """Clamp into [low, high] and round half up to an integer."""
    bounded = max(float(low), min(float(high), value))
    return int(math.floor(bounded + 0.5))


def clean_text(text: Optional[str]) -> str:
    """
    Strip HTML tags and collapse whitespace.

    Args:
        text: Raw text, possibly containing markup.

    Returns:
        Plain text on one line.
    """
    if not text:
        return ""
    if "<" in text and ">" in text:
        text = BeautifulSoup(text, "html.parser").get_text(separator=" ")
    return re.sub(r"\s+", " ", text).strip()


def truncate_text(text: str, max_length: int, suffix: str = "...") -> str:
    """Cut ``text`` to ``max_length`` characters, marking the cut with ``suffix``."""
    if not text or len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)].rstrip() + suffix


# Feed dates that neither ISO-8601 nor RFC 822 parsing understands
EXTRA_DATE_FORMATS = ("%Y-%m-%d %H:%M", "%Y%m%dT%H%M%SZ", "%d %b %Y", "%d %B %Y", "%B %d, %Y")


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse a publication date into a timezone-aware datetime.

    Args:
        value: ``time.struct_time`` (feedparser), epoch seconds (Reddit),
            ISO-8601 or RFC 822 strings.

    Returns:
        Parsed datetime, naive values assumed UTC, or None if unparseable.
    """
    parsed = None
    if isinstance(value, time.struct_time):
        parsed = datetime(*value[:6])
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        parsed = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            parsed = datetime.fromisoformat(text[:-1] + "+00:00" if text.endswith("Z") else text)
        except ValueError:
            try:
                parsed = parsedate_to_datetime(text)
            except (TypeError, ValueError):
                for fmt in EXTRA_DATE_FORMATS:
                    try:
                        parsed = datetime.strptime(text, fmt)
                        break
                    except ValueError:
                        continue

    if parsed is not None and parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
