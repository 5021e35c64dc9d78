"""
Chirpline Backend: Like and Bookmark Route Handlers
=====================================================

What:  POST /likes and POST /bookmarks.
How:   Body is {"tweet_id": <id>}; delegates to EngagementService.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.common import ErrorResponse
from app.schemas.tweet import BookmarkResponse, EngagementCreate, LikeResponse
from app.services.engagement_service import engagement_service

router = APIRouter(tags=["Engagement"])

_ERRORS = {422: {"description": "Invalid or unknown tweet_id", "model": ErrorResponse}}


@router.post(
    "/likes",
    status_code=201,
    response_model=LikeResponse,
    responses=_ERRORS,
    summary="Like a tweet",
)
async def create_like(
    body: EngagementCreate,
    db: AsyncSession = Depends(get_db_session),
) -> LikeResponse:
    return await engagement_service.create_like(db, body.tweet_id)


@router.post(
    "/bookmarks",
    status_code=201,
    response_model=BookmarkResponse,
    responses=_ERRORS,
    summary="Bookmark a tweet",
)
async def create_bookmark(
    body: EngagementCreate,
    db: AsyncSession = Depends(get_db_session),
) -> BookmarkResponse:
    return await engagement_service.create_bookmark(db, body.tweet_id)
