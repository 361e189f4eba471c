"""
Vote API endpoints for Global Sentinel.

This module provides citizen voting on threat credibility.
"""

from fastapi import APIRouter, Depends, Path, Query

from sentinel.api.dependencies import get_aggregator
from sentinel.schemas.threat import VoteRequest
from sentinel.services.vote_aggregator import VoteAggregator

# Create router
router = APIRouter()


@router.post("")
async def submit_vote(
    vote: VoteRequest,
    aggregator: VoteAggregator = Depends(get_aggregator)
):
    """
    Submit a vote on a threat.

    Args:
        vote: Threat id, vote kind, optional voter id and reasoning.
        aggregator: Vote aggregator.

    Returns:
        Updated credibility score, status and counters.
    """
    result = await aggregator.record_vote(
        vote.threat_id,
        vote.vote,
        voter_id=vote.voter_id,
        reasoning=vote.reasoning,
    )
    return {
        "success": True,
        "message": "Vote recorded successfully",
        **result.model_dump(mode="json", by_alias=True)
    }


@router.get("/threat/{threat_id}")
async def get_threat_votes(
    threat_id: str = Path(..., description="The ID of the threat"),
    limit: int = Query(100, ge=1, le=1000),
    aggregator: VoteAggregator = Depends(get_aggregator)
):
    """
    Get the vote tally and audit trail of a threat.

    Args:
        threat_id: The ID of the threat.
        limit: Maximum audit entries to return.
        aggregator: Vote aggregator.

    Returns:
        Tally, score and audit entries.
    """
    votes = await aggregator.get_votes(threat_id, limit=limit)
    return {"success": True, **votes}
