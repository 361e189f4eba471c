"""
Signal formatter for Global Sentinel collectors.

This module turns raw feed items into threat candidates: category detection,
keyword severity scoring and a relevance filter.
"""

import re
from functools import lru_cache
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone

from sentinel.core.config import settings
from sentinel.models.threat import ThreatType
from sentinel.schemas.threat import SUMMARY_MAX_LENGTH, TITLE_MAX_LENGTH
from sentinel.utils.helpers import clean_text, parse_date, truncate_text


# (minimum magnitude, severity), strongest first
EARTHQUAKE_SEVERITY = ((7.0, 90), (6.0, 75), (5.0, 60), (4.0, 45))
EARTHQUAKE_BASE_SEVERITY = 30


@lru_cache(maxsize=None)
def keyword_pattern(keyword: str) -> re.Pattern:
    """Whole-word pattern for a keyword, plural forms included ("war" but not "software")."""
    return re.compile(rf"\b{re.escape(keyword)}(?:s|es)?\b")


def mentions(content: str, keyword: str) -> bool:
    return keyword_pattern(keyword).search(content) is not None


class ThreatFormatter:
    """
    Formats collected items into candidates for the ingestion pipeline.
    """

    # Severity keywords by level and the points each match adds
    severity_keywords = {
        "critical": (25, ["pandemic", "outbreak", "nuclear", "terrorist", "collapse", "war",
                          "invasion", "cyber attack", "ransomware"]),
        "high": (15, ["crisis", "emergency", "disaster", "conflict", "threat", "breach", "hack",
                      "shortage", "inflation"]),
        "medium": (10, ["risk", "concern", "warning", "alert", "unstable", "tension", "protest",
                        "strike"]),
        "low": (5, ["monitoring", "watch", "developing", "potential", "possible"]),
    }
    base_severity = 20

    category_keywords = {
        ThreatType.HEALTH: ["health", "disease", "virus", "pandemic", "outbreak", "medical",
                            "who", "cdc"],
        ThreatType.CYBER: ["cyber", "hack", "breach", "ransomware", "malware", "security",
                           "data leak"],
        ThreatType.AI: ["artificial intelligence", "ai", "deepfake", "machine learning",
                        "chatbot", "llm"],
        ThreatType.CLIMATE: ["climate", "weather", "hurricane", "flood", "drought", "temperature",
                             "wildfire", "earthquake", "tsunami", "volcano"],
        ThreatType.ECONOMIC: ["economy", "market", "inflation", "recession", "gdp", "financial",
                              "trade"],
        ThreatType.CONFLICT: ["war", "conflict", "military", "weapons", "terrorism", "violence",
                              "protest"],
    }

    irrelevant_keywords = ["sports", "celebrity", "entertainment", "music", "movie", "game",
                           "fashion"]

    def __init__(self, min_severity: Optional[int] = None):
        self.min_severity = (
            min_severity if min_severity is not None else settings.MIN_RELEVANT_SEVERITY
        )

    def clean_title(self, title: Optional[str]) -> str:
        cleaned = clean_text(title)
        if not cleaned:
            return "Untitled"
        return cleaned[:TITLE_MAX_LENGTH]

    def extract_summary(self, text: Optional[str]) -> str:
        return truncate_text(clean_text(text), SUMMARY_MAX_LENGTH)

    def detect_category(self, content: str, fallback: Optional[str] = None) -> Optional[str]:
        """
        Detect the threat type from keywords.

        Args:
            content: Lower-cased text to scan.
            fallback: Type to use when no keyword matches.

        Returns:
            A ThreatType value, or the fallback.
        """
        for category, keywords in self.category_keywords.items():
            if any(mentions(content, keyword) for keyword in keywords):
                return category.value
        return fallback

    def calculate_severity(self, content: str) -> int:
        severity = self.base_severity
        for points, keywords in self.severity_keywords.values():
            severity += points * sum(1 for keyword in keywords if mentions(content, keyword))
        return min(severity, 100)

    def calculate_engagement_severity(self, content: str, score: int, comments: int) -> int:
        """Keyword severity boosted by community engagement."""
        severity = self.calculate_severity(content)
        if score > 1000:
            severity += 10
        if comments > 100:
            severity += 5
        return min(severity, 100)

    def format_item(
        self,
        title: Optional[str],
        summary: Optional[str],
        url: Optional[str],
        source_name: str,
        provenance: str,
        published: Any = None,
        fallback_type: Optional[str] = None,
        regions: Optional[List[str]] = None,
        severity: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Build a candidate from one collected item.

        Args:
            title: Item title.
            summary: Item summary or body, may contain HTML.
            url: Item link.
            source_name: Human-readable source name.
            provenance: Signal-type marker (rss, reddit, ...).
            published: Publication date in any supported form.
            fallback_type: Type to use when keyword detection finds nothing.
            regions: Regions configured for the source.
            severity: Precomputed severity, otherwise keyword scored.

        Returns:
            Candidate dict.
        """
        clean_summary = self.extract_summary(summary) or self.extract_summary(title)
        content = f"{clean_text(title)} {clean_summary}".lower()
        published_at = parse_date(published) or datetime.now(timezone.utc)

        sources = [source_name]
        if url:
            sources.append(url)

        return {
            "title": self.clean_title(title),
            "summary": clean_summary,
            "type": self.detect_category(content, fallback_type),
            "severity": severity if severity is not None else self.calculate_severity(content),
            "regions": list(regions or []),
            "sources": sources,
            "timestamp": published_at.isoformat(),
            "provenance": provenance,
        }

    @staticmethod
    def earthquake_severity(magnitude: float) -> int:
        for threshold, severity in EARTHQUAKE_SEVERITY:
            if magnitude >= threshold:
                return severity
        return EARTHQUAKE_BASE_SEVERITY

    def format_gdelt_article(
        self,
        article: Dict[str, Any],
        source_name: str,
        fallback_type: Optional[str] = None,
        regions: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Build a candidate from one GDELT DOC article. GDELT carries headlines only."""
        title = article.get("title")
        return self.format_item(
            title=title,
            summary=title,
            url=article.get("url"),
            source_name=article.get("domain") or source_name,
            provenance="api",
            published=article.get("seendate"),
            fallback_type=fallback_type,
            regions=regions,
        )

    def format_usgs_quake(
        self,
        feature: Dict[str, Any],
        source_name: str,
        regions: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """
        Build a candidate from one USGS GeoJSON earthquake feature.

        Severity follows the magnitude rather than keywords.

        Raises:
            KeyError, IndexError, TypeError, ValueError: If the feature lacks
                a magnitude or coordinates.
        """
        props = feature["properties"]
        depth = float(feature["geometry"]["coordinates"][2])
        magnitude = float(props["mag"])
        place = props.get("place") or "unknown location"
        occurred = props.get("time")

        candidate = self.format_item(
            title=f"Magnitude {magnitude:g} Earthquake - {place}",
            summary=f"{magnitude:g} magnitude earthquake occurred {place}. Depth: {depth:g}km",
            url=props.get("url"),
            source_name=source_name,
            provenance="api",
            # Epoch milliseconds
            published=occurred / 1000 if isinstance(occurred, (int, float)) else None,
            regions=regions,
            severity=self.earthquake_severity(magnitude),
        )
        candidate["type"] = ThreatType.CLIMATE.value
        return candidate

    def is_relevant(self, candidate: Dict[str, Any]) -> bool:
        """
        Filter out low-quality or irrelevant candidates.

        Args:
            candidate: Formatted candidate.

        Returns:
            True if the candidate is worth forwarding.
        """
        title = candidate.get("title") or ""
        if len(title) < 10:
            return False
        if (candidate.get("severity") or 0) < self.min_severity:
            return False
        if candidate.get("type") not in ThreatType.values():
            return False

        lowered = title.lower()
        return not any(mentions(lowered, keyword) for keyword in self.irrelevant_keywords)


# Create global instance
threat_formatter = ThreatFormatter()
