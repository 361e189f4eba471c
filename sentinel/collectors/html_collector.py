"""
HTML collector for Global Sentinel.

This module provides a collector for agency pages that publish no feed.
"""

from typing import List, Dict, Any, Optional
import aiohttp

from sentinel.collectors.base_collector import BaseCollector
from sentinel.collectors.formatter import ThreatFormatter

HTML_MAX_ITEMS = 10


class HTMLCollector(BaseCollector):
    """
    Collector for a listing page scraped with CSS selectors.
    """

    def __init__(
        self,
        source: Dict[str, Any],
        session: Optional[aiohttp.ClientSession] = None,
        formatter: Optional[ThreatFormatter] = None,
    ):
        """
        Initialize the HTML collector.

        Args:
            source: Source config with name, url, selectors, type and optional regions.
            session: Optional aiohttp session to use.
            formatter: Formatter used to build candidates.
        """
        super().__init__(session, formatter)
        self.name = source["name"]
        self.source_url = source["url"]
        self.source_type = "html"
        self.selectors = dict(source["selectors"])
        self.threat_type = source.get("type")
        self.regions = list(source.get("regions", []))
        self.request_timeout = 10

    async def fetch_items(self) -> List[Dict[str, Any]]:
        entries = await self.extract_page_items(
            self.source_url, self.selectors, min(self.max_articles, HTML_MAX_ITEMS)
        )
        return [
            self.formatter.format_item(
                title=entry["title"],
                summary=entry["summary"],
                url=entry["url"],
                source_name=self.name,
                provenance=self.source_type,
                published=entry["published"],
                fallback_type=self.threat_type,
                regions=self.regions,
            )
            for entry in entries
        ]
