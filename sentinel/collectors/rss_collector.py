"""
RSS collector for Global Sentinel.

This module provides a collector for any configured RSS/Atom feed.
"""

from typing import List, Dict, Any, Optional
import aiohttp

from sentinel.collectors.base_collector import BaseCollector
from sentinel.collectors.formatter import ThreatFormatter


class RSSCollector(BaseCollector):
    """
    Collector for a single RSS feed.
    """

    def __init__(
        self,
        source: Dict[str, Any],
        session: Optional[aiohttp.ClientSession] = None,
        formatter: Optional[ThreatFormatter] = None,
    ):
        """
        Initialize the RSS collector.

        Args:
            source: Source config with name, url, type and optional regions.
            session: Optional aiohttp session to use.
            formatter: Formatter used to build candidates.
        """
        super().__init__(session, formatter)
        self.name = source["name"]
        self.source_url = source["url"]
        self.source_type = "rss"
        self.threat_type = source.get("type")
        self.regions = list(source.get("regions", []))

    async def fetch_items(self) -> List[Dict[str, Any]]:
        entries = await self.parse_rss_feed(self.source_url)
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
