"""
Base collector for Global Sentinel.

This module provides the base framework for signal collection.
"""

from abc import ABC, abstractmethod
import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import urljoin
import aiohttp
import feedparser
from bs4 import BeautifulSoup, Tag

from sentinel.core.config import settings
from sentinel.core.logging import logger
from sentinel.collectors.formatter import ThreatFormatter, threat_formatter
from sentinel.services.sanitizer import normalize

# Elements that usually wrap one entry of a listing page
ENTRY_TAGS = ("article", "li")
ENTRY_CLASSES = {"item", "post"}


def _entry_of(element: Tag) -> Tag:
    for parent in element.parents:
        if parent.name in ENTRY_TAGS or ENTRY_CLASSES.intersection(parent.get("class") or []):
            return parent
    return element.parent


class BaseCollector(ABC):
    """
    Base collector class for all signal sources.

    Provides common functionality for fetching and formatting signals.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        formatter: Optional[ThreatFormatter] = None,
    ):
        """
        Initialize the collector.

        Args:
            session: Optional aiohttp session to use.
            formatter: Formatter used to build candidates.
        """
        self.session = session
        self.formatter = formatter or threat_formatter
        self.name = "base"
        self.source_url = ""
        self.source_type = ""
        self.threat_type: Optional[str] = None
        self.regions: List[str] = []
        self.max_articles = settings.MAX_ARTICLES_PER_SOURCE
        self.request_timeout = 30
        self.request_headers = {
            "User-Agent": f"GlobalSentinel/{settings.VERSION} (+signal collector)"
        }

    async def ensure_session(self):
        """Ensure an aiohttp session exists."""
        if self.session is None:
            self.session = aiohttp.ClientSession()

    async def close_session(self):
        """Close the aiohttp session if it was created by this collector."""
        if self.session and not self.session.closed:
            await self.session.close()
        self.session = None

    @abstractmethod
    async def fetch_items(self) -> List[Dict[str, Any]]:
        """
        Fetch raw items and format them into candidates.

        Returns:
            List of candidate dicts.
        """
        raise NotImplementedError

    async def collect(self) -> List[Dict[str, Any]]:
        """
        Collect relevant, sanitized candidates from the source.

        Returns:
            List of candidates ready to forward. Empty on failure.
        """
        logger.info(f"Collecting signals from {self.name}")

        try:
            items = await self.fetch_items()
        except Exception as e:
            logger.error(f"Error collecting from {self.name}: {e}")
            return []

        candidates = []
        for item in items[:self.max_articles]:
            if not self.formatter.is_relevant(item):
                logger.debug(f"Skipping irrelevant item from {self.name}: {item.get('title')}")
                continue
            candidate = normalize(item)
            # The core assigns ids
            candidate.pop("id", None)
            candidates.append(candidate)

        logger.info(f"Collected {len(candidates)} relevant signals from {self.name}")
        return candidates

    async def _get(
        self,
        url: str,
        decode: Callable[[aiohttp.ClientResponse], Awaitable[Any]],
        params: Optional[Dict[str, str]] = None,
    ) -> Optional[Any]:
        await self.ensure_session()

        try:
            async with self.session.get(
                url,
                params=params,
                headers=self.request_headers,
                timeout=aiohttp.ClientTimeout(total=self.request_timeout)
            ) as response:
                if response.status != 200:
                    logger.warning(f"{self.name}: GET {url} returned {response.status}")
                    return None
                return await decode(response)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"{self.name}: GET {url} failed: {e}")
            return None

    async def fetch_url(self, url: str) -> Optional[str]:
        """
        Fetch a document as text.

        Returns:
            Body, or None when the source did not answer with 200.
        """
        return await self._get(url, lambda response: response.text())

    async def fetch_json(self, url: str, params: Optional[Dict[str, str]] = None) -> Optional[Any]:
        """
        Fetch and decode a JSON document.

        Args:
            url: Document URL.
            params: Query string parameters.

        Returns:
            Decoded JSON, or None when the source did not answer with valid JSON.
        """
        return await self._get(url, lambda response: response.json(content_type=None), params)

    async def extract_page_items(
        self, page_url: str, selectors: Dict[str, str], limit: int
    ) -> List[Dict[str, Any]]:
        """
        Scrape the entries of a listing page.

        Args:
            page_url: Page to scrape.
            selectors: CSS selectors. ``title`` finds the headline of each
                entry; ``link``, ``summary`` and ``date`` are looked up inside
                the entry holding that headline.
            limit: Maximum entries to read.

        Returns:
            Dicts with title, url, summary and published (raw date text).
        """
        html = await self.fetch_url(page_url)
        if not html:
            return []

        soup = BeautifulSoup(html, "html.parser")
        items = []
        for title_element in soup.select(selectors["title"])[:limit]:
            title = title_element.get_text(" ", strip=True)
            if not title:
                continue

            entry = _entry_of(title_element)
            href = title_element.get("href")
            if not href and selectors.get("link"):
                link_element = entry.select_one(selectors["link"])
                href = link_element.get("href") if link_element else None

            summary_element = entry.select_one(selectors["summary"]) if selectors.get("summary") else None
            if summary_element is None:
                summary_element = title_element.parent.select_one("p, .description, .summary")
            date_element = entry.select_one(selectors["date"]) if selectors.get("date") else None

            items.append({
                "title": title,
                "url": urljoin(page_url, href) if href else None,
                "summary": summary_element.get_text(" ", strip=True) if summary_element else "",
                "published": date_element.get_text(" ", strip=True) if date_element else None,
            })

        return items

    async def parse_rss_feed(self, feed_url: str) -> List[Dict[str, Any]]:
        """
        Download a feed and flatten its entries.

        Args:
            feed_url: RSS or Atom feed URL.

        Returns:
            Dicts with title, url, summary and published; entries without a link are dropped.
        """
        document = await self.fetch_url(feed_url)
        if not document:
            return []

        parsed = feedparser.parse(document)
        if parsed.bozo and not parsed.entries:
            logger.warning(f"{self.name}: unreadable feed {feed_url}: {parsed.get('bozo_exception')}")
            return []

        entries = []
        for entry in parsed.entries:
            link = entry.get("link") or entry.get("id")
            if not link:
                continue
            entries.append({
                "title": entry.get("title", ""),
                "url": link,
                "summary": entry.get("summary") or entry.get("description") or "",
                "published": entry.get("published_parsed") or entry.get("published"),
            })
            if len(entries) >= self.max_articles:
                break

        return entries
