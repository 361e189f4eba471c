"""
Threat API endpoints for Global Sentinel.

This module provides the read operations used by the dashboard, trends and map.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Path, Query

from sentinel.api.dependencies import get_store
from sentinel.models.threat import ThreatStatus, ThreatType
from sentinel.services.threat_store import ThreatStore

# Create router
router = APIRouter()


@router.get("")
async def list_threats(
    store: ThreatStore = Depends(get_store),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    status: Optional[ThreatStatus] = ThreatStatus.ACTIVE,
    type: Optional[ThreatType] = None,
    min_severity: Optional[int] = Query(None, ge=0, le=100),
):
    """
    List threats, active ones by default.

    Args:
        store: Threat store.
        skip: Number of items to skip.
        limit: Maximum number of items to return.
        status: Filter by threat status.
        type: Filter by threat type.
        min_severity: Minimum severity level.

    Returns:
        List of threats, newest first.
    """
    threats = await store.list_threats(
        status=status,
        threat_type=type,
        min_severity=min_severity,
        skip=skip,
        limit=limit,
    )
    return {
        "success": True,
        "count": len(threats),
        "threats": [threat.to_payload() for threat in threats]
    }


@router.get("/stats")
async def get_threat_stats(store: ThreatStore = Depends(get_store)):
    """
    Get threat statistics.

    Args:
        store: Threat store.

    Returns:
        Counts by status and type, average severity and credibility.
    """
    return await store.stats()


@router.get("/{threat_id}")
async def get_threat(
    threat_id: str = Path(..., description="The ID of the threat to retrieve"),
    store: ThreatStore = Depends(get_store)
):
    """
    Get a specific threat by ID.

    Args:
        threat_id: The ID of the threat.
        store: Threat store.

    Returns:
        Threat record.
    """
    threat = await store.get(threat_id)
    return threat.to_payload()
