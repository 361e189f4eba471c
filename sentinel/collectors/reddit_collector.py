"""
Reddit collector for Global Sentinel.

This module provides a collector for subreddit listings via Reddit's public JSON API.
"""

from typing import List, Dict, Any, Optional
import aiohttp

from sentinel.core.logging import logger
from sentinel.collectors.base_collector import BaseCollector
from sentinel.collectors.formatter import ThreatFormatter


class RedditCollector(BaseCollector):
    """
    Collector for the hot listing of one subreddit.
    """

    listing_url = "https://www.reddit.com/r/{subreddit}/hot.json?limit={limit}"

    def __init__(
        self,
        source: Dict[str, Any],
        session: Optional[aiohttp.ClientSession] = None,
        formatter: Optional[ThreatFormatter] = None,
    ):
        """
        Initialize the Reddit collector.

        Args:
            source: Source config with subreddit, type and optional regions.
            session: Optional aiohttp session to use.
            formatter: Formatter used to build candidates.
        """
        super().__init__(session, formatter)
        self.subreddit = source["subreddit"]
        self.name = f"Reddit r/{self.subreddit}"
        self.source_url = self.listing_url.format(subreddit=self.subreddit, limit=self.max_articles)
        self.source_type = "reddit"
        self.threat_type = source.get("type")
        self.regions = list(source.get("regions", []))

    async def fetch_items(self) -> List[Dict[str, Any]]:
        listing = await self.fetch_json(self.source_url)
        if not listing:
            return []

        items = []
        for child in listing.get("data", {}).get("children", []):
            post = child.get("data", {})
            if post.get("stickied"):
                continue
            title = post.get("title", "")
            body = post.get("selftext") or title
            content = f"{title} {body}".lower()
            try:
                severity = self.formatter.calculate_engagement_severity(
                    content,
                    int(post.get("score") or 0),
                    int(post.get("num_comments") or 0),
                )
            except (TypeError, ValueError) as e:
                logger.error(f"Malformed Reddit post in r/{self.subreddit}: {e}")
                continue

            items.append(self.formatter.format_item(
                title=title,
                summary=body,
                url=f"https://reddit.com{post['permalink']}" if post.get("permalink") else post.get("url"),
                source_name=self.name,
                provenance=self.source_type,
                published=post.get("created_utc"),
                fallback_type=self.threat_type,
                regions=self.regions,
                severity=severity,
            ))

        return items
