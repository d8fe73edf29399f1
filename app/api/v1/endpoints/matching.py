"""
API endpoints for property matching
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from app.exceptions import BuyerProfileNotFoundError
from app.models.property_match import (
    BulkMatchResult,
    MatchingRunResult,
    MatchingStats,
    PropertySearchCriteria,
    RankedProperty,
)
from app.services import (
    get_match_stats_service,
    get_matching_service,
    get_reconciliation_service,
    get_recommendation_service,
)
from app.services.match_stats_service import MatchStatsService
from app.services.matching_service import MatchingService
from app.services.recommendation_service import RecommendationService
from app.services.reconciliation_service import ReconciliationService

logger = logging.getLogger(__name__)

router = APIRouter()


class AutoMatchRequest(BaseModel):
    organization_id: str
    property_id: Optional[str] = None
    buyer_profile_id: Optional[str] = None


class SearchRequest(BaseModel):
    buyer_profile_id: str
    criteria: PropertySearchCriteria = PropertySearchCriteria()


class BulkMatchRequest(BaseModel):
    organization_id: str


@router.post("/auto-match", response_model=MatchingRunResult)
async def trigger_auto_match(
    request: AutoMatchRequest,
    service: MatchingService = Depends(get_matching_service),
):
    """Trigger auto-matching for an organization, a new property or a new buyer profile"""
    result = await service.run_matching(
        request.organization_id, property_id=request.property_id, buyer_profile_id=request.buyer_profile_id
    )
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error or "Matching failed")
    return result


@router.get("/buyers/{buyer_profile_id}/recommendations", response_model=List[RankedProperty])
async def get_recommendations(
    buyer_profile_id: str,
    limit: int = Query(10, ge=1, le=100, description="Maximum number of recommendations"),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Get the best matching available properties for a buyer"""
    try:
        return await service.recommend(buyer_profile_id, limit)
    except Exception as e:
        logger.error("Error getting recommendations for buyer %s: %s", buyer_profile_id, e)
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.post("/search", response_model=List[RankedProperty])
async def search_properties(
    request: SearchRequest,
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Search properties for a buyer, defaulting criteria to the buyer's preferences"""
    try:
        return await service.search(request.buyer_profile_id, request.criteria)
    except BuyerProfileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except Exception as e:
        logger.error("Error searching properties for buyer %s: %s", request.buyer_profile_id, e)
        raise HTTPException(status_code=500, detail=str(e)) from e


@router.post("/bulk-match", response_model=BulkMatchResult)
async def bulk_match(
    request: BulkMatchRequest,
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """Re-score every available property of an organization against all buyers"""
    result = await service.bulk_match(request.organization_id)
    if not result.success:
        raise HTTPException(status_code=500, detail=result.error or "Bulk matching failed")
    return result


@router.get("/stats", response_model=MatchingStats)
async def get_matching_stats(
    organization_id: Optional[str] = Query(None, description="Limit statistics to one organization"),
    service: MatchStatsService = Depends(get_match_stats_service),
):
    """Get match quality and notification statistics"""
    try:
        return await service.get_stats(organization_id)
    except Exception as e:
        logger.error("Error getting matching stats: %s", e)
        raise HTTPException(status_code=500, detail=str(e)) from e
