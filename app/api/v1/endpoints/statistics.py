"""
Keyword match statistics endpoints
"""

import logging

from fastapi import APIRouter, HTTPException, Query

from app.core.config import settings
from app.exceptions import DatabaseNotConnectedError
from app.models.keyword_match import MatchStats
from app.services.keyword_match_service import keyword_match_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=MatchStats)
async def get_statistics(days: int = Query(settings.STATS_DEFAULT_DAYS, ge=1, description="Trailing window in days")):
    """Global keyword match statistics"""
    try:
        return await keyword_match_service.get_global_stats(days)
    except DatabaseNotConnectedError as e:
        raise HTTPException(status_code=503, detail=e.message) from e
    except Exception as e:
        logger.error("Error getting statistics: %s", e)
        raise HTTPException(status_code=500, detail="Failed to get statistics") from e


@router.get("/users/{user_id}", response_model=MatchStats)
async def get_user_statistics(
    user_id: int,
    days: int = Query(settings.STATS_DEFAULT_DAYS, ge=1, description="Trailing window in days"),
):
    """Keyword match statistics for one user"""
    try:
        return await keyword_match_service.aggregate_stats(user_id, days)
    except DatabaseNotConnectedError as e:
        raise HTTPException(status_code=503, detail=e.message) from e
    except Exception as e:
        logger.error("Error getting statistics for user %s: %s", user_id, e)
        raise HTTPException(status_code=500, detail="Failed to get statistics") from e
