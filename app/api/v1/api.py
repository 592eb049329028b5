from fastapi import APIRouter

from app.api.v1.endpoints import keyword_matches, statistics

api_router = APIRouter()
api_router.include_router(
    statistics.router, prefix="/statistics", tags=["statistics"]
)
api_router.include_router(
    keyword_matches.router, prefix="/keyword-matches", tags=["keyword-matches"]
)
