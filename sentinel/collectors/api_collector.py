"""
API collector for Global Sentinel.

This module provides a collector for structured JSON APIs: GDELT article
lists and USGS earthquake feeds.
"""

from typing import List, Dict, Any, Optional
import aiohttp

from sentinel.core.logging import logger
from sentinel.collectors.base_collector import BaseCollector
from sentinel.collectors.formatter import ThreatFormatter

# GDELT returns many near-duplicate headlines per query
GDELT_MAX_ARTICLES = 15


class APICollector(BaseCollector):
    """
    Collector for one JSON API endpoint.

    ``format`` in the source config selects how the response is read.
    """

    formats = ("gdelt", "usgs")

    def __init__(
        self,
        source: Dict[str, Any],
        session: Optional[aiohttp.ClientSession] = None,
        formatter: Optional[ThreatFormatter] = None,
    ):
        """
        Initialize the API collector.

        Args:
            source: Source config with name, url, format, optional params, type and regions.
            session: Optional aiohttp session to use.
            formatter: Formatter used to build candidates.

        Raises:
            ValueError: If the format is not one of ``formats``.
        """
        super().__init__(session, formatter)
        if source.get("format") not in self.formats:
            raise ValueError(f"Unknown API format for {source.get('name')}: {source.get('format')}")
        self.name = source["name"]
        self.source_url = source["url"]
        self.source_type = "api"
        self.format = source["format"]
        self.params = {key: str(value) for key, value in source.get("params", {}).items()}
        self.threat_type = source.get("type")
        self.regions = list(source.get("regions", []))

    async def fetch_items(self) -> List[Dict[str, Any]]:
        document = await self.fetch_json(self.source_url, params=self.params or None)
        if not isinstance(document, dict):
            return []

        if self.format == "gdelt":
            return self.read_gdelt(document)
        return self.read_usgs(document)

    def read_gdelt(self, document: Dict[str, Any]) -> List[Dict[str, Any]]:
        articles = [
            article for article in document.get("articles") or []
            if isinstance(article, dict) and article.get("title")
        ]
        return [
            self.formatter.format_gdelt_article(
                article, self.name, fallback_type=self.threat_type, regions=self.regions
            )
            for article in articles[:GDELT_MAX_ARTICLES]
        ]

    def read_usgs(self, document: Dict[str, Any]) -> List[Dict[str, Any]]:
        items = []
        for feature in document.get("features") or []:
            try:
                items.append(self.formatter.format_usgs_quake(feature, self.name, regions=self.regions))
            except (KeyError, IndexError, TypeError, ValueError) as e:
                logger.warning(f"{self.name}: skipping malformed earthquake feature: {e}")
        return items
