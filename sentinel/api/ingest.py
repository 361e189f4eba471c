"""
Ingest API endpoints for Global Sentinel.

This module provides the entry points collectors and API callers use to submit threats.
"""

from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends

from sentinel.api.dependencies import get_pipeline
from sentinel.services.ingestion import IngestionPipeline

# Create router
router = APIRouter()


@router.post("")
async def ingest_threat(
    candidate: Dict[str, Any] = Body(...),
    pipeline: IngestionPipeline = Depends(get_pipeline)
):
    """
    Ingest a single threat candidate.

    Args:
        candidate: Raw threat payload.
        pipeline: Ingestion pipeline.

    Returns:
        Assigned threat id.
    """
    threat_id = await pipeline.ingest(candidate)
    return {
        "success": True,
        "threatId": threat_id,
        "message": "Threat ingested successfully"
    }


@router.post("/batch")
async def ingest_batch(
    candidates: List[Any] = Body(...),
    pipeline: IngestionPipeline = Depends(get_pipeline)
):
    """
    Ingest several candidates, each independently.

    Args:
        candidates: Raw threat payloads.
        pipeline: Ingestion pipeline.

    Returns:
        Per-item outcomes.
    """
    outcomes = await pipeline.ingest_batch(candidates)
    accepted = sum(1 for outcome in outcomes if outcome.success)
    return {
        "success": True,
        "accepted": accepted,
        "rejected": len(outcomes) - accepted,
        "results": [outcome.model_dump() for outcome in outcomes]
    }
