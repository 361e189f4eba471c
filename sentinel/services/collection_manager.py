"""
Collection manager for Global Sentinel.

This module runs the collectors and forwards what they find to the core.
It runs in the collector process, independently of the API.
"""

import asyncio
import time
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import aiohttp
import schedule

from sentinel.core.config import settings
from sentinel.core.logging import logger
from sentinel.collectors.api_collector import APICollector
from sentinel.collectors.base_collector import BaseCollector
from sentinel.collectors.html_collector import HTMLCollector
from sentinel.collectors.reddit_collector import RedditCollector
from sentinel.collectors.rss_collector import RSSCollector
from sentinel.collectors.sources import API_SOURCES, HTML_SOURCES, REDDIT_SOURCES, RSS_SOURCES
from sentinel.services.forwarder import CollectorForwarder


class CollectionManager:
    """
    Collection manager for Global Sentinel.

    Collects from sources one after another and forwards each batch, keeping
    per-source statistics.
    """

    def __init__(
        self,
        collectors: Optional[List[BaseCollector]] = None,
        forwarder: Optional[CollectorForwarder] = None,
    ):
        """
        Initialize the collection manager.

        Args:
            collectors: Collectors to run. Defaults to the configured sources.
            forwarder: Forwarder to the core.
        """
        self.running = False
        self.session: Optional[aiohttp.ClientSession] = None
        self.collection_frequency = settings.COLLECTION_FREQUENCY
        self.collectors = collectors
        self.forwarder = forwarder or CollectorForwarder()
        self.last_collection_time: Optional[datetime] = None
        self.source_stats: Dict[str, Dict[str, Any]] = {}
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.source_delay = 2  # seconds between sources

    def default_collectors(self) -> List[BaseCollector]:
        collectors: List[BaseCollector] = [
            RSSCollector(source, session=self.session) for source in RSS_SOURCES
        ]
        collectors.extend(RedditCollector(source, session=self.session) for source in REDDIT_SOURCES)
        collectors.extend(APICollector(source, session=self.session) for source in API_SOURCES)
        collectors.extend(HTMLCollector(source, session=self.session) for source in HTML_SOURCES)
        return collectors

    async def initialize(self):
        """Initialize the shared HTTP session and the collectors."""
        self.loop = asyncio.get_running_loop()
        if self.session is None:
            self.session = aiohttp.ClientSession()
        if self.collectors is None:
            self.collectors = self.default_collectors()
        if self.forwarder.session is None:
            self.forwarder.session = self.session

    async def close(self):
        """Close the HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None
        self.forwarder.session = None

    def _record_stats(self, name: str, collected: int, forwarded: int, failed: int):
        stats = self.source_stats.setdefault(name, {
            "total_collected": 0,
            "total_forwarded": 0,
            "total_failed": 0,
            "successful_runs": 0,
            "failed_runs": 0,
            "last_collected_at": None,
        })
        stats["total_collected"] += collected
        stats["total_forwarded"] += forwarded
        stats["total_failed"] += failed
        if collected > 0 and forwarded > 0:
            stats["successful_runs"] += 1
        elif collected > 0:
            stats["failed_runs"] += 1
        stats["last_collected_at"] = datetime.now(timezone.utc).isoformat()

    async def collect_from_source(self, collector: BaseCollector) -> Dict[str, Any]:
        """
        Collect from one source and forward the results.

        Args:
            collector: Collector to run.

        Returns:
            Collection statistics.
        """
        start_time = time.time()

        candidates = await collector.collect()
        outcomes = await self.forwarder.forward_batch(candidates) if candidates else []

        forwarded = sum(1 for outcome in outcomes if outcome.success)
        failed = len(outcomes) - forwarded
        self._record_stats(collector.name, len(candidates), forwarded, failed)

        logger.info(
            f"Collection from {collector.name} complete: {len(candidates)} signals, "
            f"{forwarded} forwarded, {failed} failed"
        )

        return {
            "source_name": collector.name,
            "signals_collected": len(candidates),
            "signals_forwarded": forwarded,
            "errors": failed,
            "duration_seconds": time.time() - start_time,
            "outcomes": [outcome.model_dump() for outcome in outcomes],
        }

    async def run_collection(self, source_name: Optional[str] = None) -> Dict[str, Any]:
        """
        Run collection for all sources or a specific source.

        Args:
            source_name: Optional source name to collect from a single source.

        Returns:
            Collection statistics.
        """
        if self.running:
            logger.warning("Collection already running, skipping")
            return {"status": "already_running"}

        self.running = True
        start_time = time.time()
        results = []

        try:
            await self.initialize()

            collectors = [
                collector for collector in self.collectors
                if source_name is None or collector.name == source_name
            ]
            if not collectors:
                logger.warning(f"No collectors found{' for: ' + source_name if source_name else ''}")

            for index, collector in enumerate(collectors):
                results.append(await self.collect_from_source(collector))

                # Add delay between sources to be polite to upstream servers
                if self.source_delay and index < len(collectors) - 1:
                    await asyncio.sleep(self.source_delay)

            self.last_collection_time = datetime.now(timezone.utc)

            total_collected = sum(result["signals_collected"] for result in results)
            total_forwarded = sum(result["signals_forwarded"] for result in results)
            total_errors = sum(result["errors"] for result in results)

            logger.info(
                f"Collection complete: {len(results)} sources, "
                f"{total_collected} signals collected, "
                f"{total_forwarded} forwarded, "
                f"{total_errors} errors"
            )

            return {
                "status": "completed",
                "sources_processed": len(results),
                "signals_collected": total_collected,
                "signals_forwarded": total_forwarded,
                "errors": total_errors,
                "duration_seconds": time.time() - start_time,
                "source_results": results,
            }

        finally:
            self.running = False

    def _trigger_collection(self):
        # Called from the scheduler thread
        if self.loop is None or self.loop.is_closed():
            logger.error("Collection loop is not running, skipping scheduled collection")
            return
        future = asyncio.run_coroutine_threadsafe(self.run_collection(), self.loop)
        future.add_done_callback(self._log_collection_failure)

    @staticmethod
    def _log_collection_failure(future):
        if not future.cancelled() and future.exception() is not None:
            logger.error(f"Scheduled collection failed: {future.exception()}", exc_info=future.exception())

    def schedule_collections(self):
        """Schedule regular collections."""
        logger.info(f"Scheduling collections every {self.collection_frequency} minutes")
        schedule.every(self.collection_frequency).minutes.do(self._trigger_collection)
