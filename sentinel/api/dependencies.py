"""
Request dependencies for Global Sentinel.

Core components are created in the application lifespan and kept on
``app.state``; routes receive them through these dependencies.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader

from sentinel.core.config import settings
from sentinel.services.ingestion import IngestionPipeline
from sentinel.services.threat_store import ThreatStore
from sentinel.services.vote_aggregator import VoteAggregator

# API key security
API_KEY_NAME = "X-API-Key"
api_key_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)


async def get_api_key(api_key_header: str = Depends(api_key_header)):
    """
    Validate API key.

    Args:
        api_key_header: API key from header.

    Returns:
        API key if valid.

    Raises:
        HTTPException: If API key is invalid.
    """
    if api_key_header == settings.API_KEY:
        return api_key_header
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid API Key",
    )


def get_store(request: Request) -> ThreatStore:
    return request.app.state.store


def get_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.pipeline


def get_aggregator(request: Request) -> VoteAggregator:
    return request.app.state.aggregator
