"""
API endpoints for recorded keyword matches
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query

from app.exceptions import DatabaseNotConnectedError
from app.models.keyword_match import KeywordMatch
from app.models.user import MAX_CHARACTER_LIMIT, MIN_CHARACTER_LIMIT
from app.services.keyword_match_service import keyword_match_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _service_error(e: Exception, what: str) -> HTTPException:
    if isinstance(e, DatabaseNotConnectedError):
        return HTTPException(status_code=503, detail=e.message)
    logger.error("Error getting %s: %s", what, e)
    return HTTPException(status_code=500, detail=f"Failed to get {what}")


@router.get("/recent", response_model=List[KeywordMatch])
async def get_recent_matches(limit: int = Query(100, ge=1, le=1000, description="Limit number of results")):
    """Most recent matches across all users"""
    try:
        return await keyword_match_service.get_recent_matches(limit)
    except Exception as e:
        raise _service_error(e, "recent matches") from e


@router.get("/users/{user_id}", response_model=List[KeywordMatch])
async def get_user_matches(
    user_id: int,
    limit: int = Query(50, ge=1, le=1000, description="Limit number of results"),
    max_length: Optional[int] = Query(
        None, ge=MIN_CHARACTER_LIMIT, le=MAX_CHARACTER_LIMIT, description="Only messages up to this length"
    ),
):
    """Matches of one user, newest first"""
    try:
        if max_length is not None:
            return await keyword_match_service.get_matches_by_user_and_character_limit(user_id, max_length, limit)
        return await keyword_match_service.get_matches_by_user(user_id, limit)
    except Exception as e:
        raise _service_error(e, f"matches for user {user_id}") from e


@router.get("/keywords/{keyword}", response_model=List[KeywordMatch])
async def get_keyword_matches(keyword: str, limit: int = Query(50, ge=1, le=1000, description="Limit number of results")):
    """Matches recorded for one keyword, newest first"""
    try:
        return await keyword_match_service.get_matches_by_keyword(keyword, limit)
    except Exception as e:
        raise _service_error(e, f"matches for keyword '{keyword}'") from e
