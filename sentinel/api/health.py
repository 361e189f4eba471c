"""
Health API endpoint for Global Sentinel.

Reports whether the threat store answers and how the serving process is doing.
"""

import os
import time
import psutil
from datetime import datetime, timezone
from typing import Any, Dict
from fastapi import APIRouter, Depends

from sentinel.api.dependencies import get_store
from sentinel.core.config import settings
from sentinel.core.errors import StoreError
from sentinel.core.logging import logger
from sentinel.services.threat_store import ThreatStore

router = APIRouter()

_MB = 1024 * 1024


def sqlite_path(url: str):
    """File path behind a file-backed SQLite URL, or None."""
    if not url.startswith("sqlite:///") or ":memory:" in url:
        return None
    return url[len("sqlite:///"):]


async def store_status(store: ThreatStore) -> Dict[str, Any]:
    """
    Round-trip to the store and report its size on disk.

    Args:
        store: Threat store.

    Returns:
        Dict[str, Any]: ``operational`` with latency, or ``unavailable`` with the error.
    """
    started = time.perf_counter()
    try:
        await store.ping()
    except StoreError as e:
        logger.error(f"Store health check failed: {e.message}")
        return {"status": "unavailable", "reason": e.reason, "error": e.message}

    status: Dict[str, Any] = {
        "status": "operational",
        "latency_ms": round((time.perf_counter() - started) * 1000, 1),
    }
    path = sqlite_path(store.database.url)
    if path and os.path.exists(path):
        status["file"] = path
        status["size_mb"] = round(os.path.getsize(path) / _MB, 2)
    return status


def process_status() -> Dict[str, Any]:
    """Resource usage of the serving process and its host."""
    try:
        process = psutil.Process()
        with process.oneshot():
            rss = process.memory_info().rss
            threads = process.num_threads()
            uptime = time.time() - process.create_time()
        return {
            "pid": process.pid,
            "rss_mb": round(rss / _MB, 1),
            "threads": threads,
            "uptime_seconds": int(uptime),
            "host_cpu_percent": psutil.cpu_percent(interval=None),
            "host_memory_percent": psutil.virtual_memory().percent,
        }
    except (psutil.Error, OSError) as e:
        logger.error(f"Process stats unavailable: {e}")
        return {"error": str(e)}


@router.get("")
async def health_check(store: ThreatStore = Depends(get_store)):
    """
    Health of the store and the serving process.

    Returns:
        Dict: ``operational`` when the store answers, ``degraded`` otherwise.
    """
    database_status = await store_status(store)
    return {
        "status": "operational" if database_status["status"] == "operational" else "degraded",
        "version": settings.VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database_status": database_status,
        "process": process_status(),
    }
