#!/usr/bin/env python3
"""
Collector process for Global Sentinel.

Runs every configured collector once at startup, then on the schedule set by
COLLECTION_FREQUENCY, forwarding what it finds to the core's ingest route.
"""

import argparse
import asyncio
import signal
import threading

import schedule

from sentinel.core.config import settings
from sentinel.core.logging import logger
from sentinel.services.collection_manager import CollectionManager
from sentinel.services.forwarder import CollectorForwarder


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=f"{settings.PROJECT_NAME} collector process")
    parser.add_argument("--once", action="store_true", help="collect a single time and exit")
    parser.add_argument("--source", help="only run the collector with this name")
    parser.add_argument("--core-url", help=f"core API base URL (default {settings.CORE_BACKEND_URL})")
    return parser.parse_args(argv)


def pump_schedule(stop: threading.Event):
    """Fire due jobs until ``stop`` is set. Runs in its own thread."""
    while not stop.is_set():
        schedule.run_pending()
        stop.wait(1)


async def run(args) -> None:
    stop = threading.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    manager = CollectionManager(forwarder=CollectorForwarder(core_url=args.core_url))
    logger.info(f"Collectors forwarding to {manager.forwarder.ingest_url}")

    try:
        await manager.initialize()
        summary = await manager.run_collection(args.source)
        logger.info(
            f"Startup collection: {summary.get('signals_collected', 0)} collected, "
            f"{summary.get('signals_forwarded', 0)} forwarded, {summary.get('errors', 0)} failed"
        )
        if args.once:
            return

        manager.schedule_collections()
        threading.Thread(target=pump_schedule, args=(stop,), name="scheduler", daemon=True).start()

        while not stop.is_set():
            await asyncio.sleep(1)
        logger.info("Stop requested")
    finally:
        stop.set()
        schedule.clear()
        await manager.close()
        logger.info("Collector process stopped")


if __name__ == "__main__":
    asyncio.run(run(parse_args()))
