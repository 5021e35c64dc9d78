"""
Chirpline Backend: Tweet Route Handlers
=========================================

What:  /tweets endpoints: list, show, create, update, delete, and the
       retweet / quote tweet / reply sub-resources.
How:   Reads the request payload, delegates to TweetService, maps results to
       status codes. Errors are formatted by the global handlers in main.py.

Request Bodies:
    JSON:       {"content": "hello"}
    Multipart:  content=<text>, media=<image file>

    Both are parsed into TweetPayload. Only `content` and `media` are read;
    any other key (tweet_id, is_retweet, ...) is ignored. A malformed body
    or a wrongly typed field is a 422.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request, Response, UploadFile
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PayloadError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db_session
from app.models import TweetKind
from app.schemas.common import ErrorResponse
from app.schemas.tweet import TweetPayload, TweetResponse
from app.services.media_service import MediaUpload
from app.services.tweet_service import TweetChanges, tweet_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Tweets"])

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")

# URL segment -> kind of derived tweet
CHILD_ROUTES = {
    "retweets": TweetKind.RETWEET,
    "quote_tweets": TweetKind.QUOTE_TWEET,
    "replies": TweetKind.REPLY,
}


# ══════════════════════════════════════════════════════════════════════════
# Payload Parsing
# ══════════════════════════════════════════════════════════════════════════

async def _read_payload(request: Request) -> TweetPayload:
    content_type = request.headers.get("content-type", "").lower()
    try:
        if content_type.startswith(FORM_CONTENT_TYPES):
            form = await request.form()
            return TweetPayload.model_validate(dict(form))

        body = await request.body()
        if not body.strip():
            return TweetPayload()
        return TweetPayload.model_validate_json(body)
    except PayloadError as e:
        # Same 422 envelope as FastAPI's own body validation
        raise RequestValidationError(e.errors(include_url=False)) from e


async def read_media_upload(upload: UploadFile, limit: Optional[int] = None) -> MediaUpload:
    """
    Read an uploaded file, at most one byte past the size limit.

    The declared size (or the truncated read) is enough for the size rule
    to reject an oversized upload, so the rest is never pulled into memory.
    """
    limit = settings.media_max_bytes if limit is None else limit
    data = await upload.read(limit + 1)
    return MediaUpload(
        filename=upload.filename or "upload",
        content_type=upload.content_type or "application/octet-stream",
        data=data,
        size=upload.size if upload.size is not None else len(data),
    )


async def read_tweet_changes(request: Request) -> TweetChanges:
    """FastAPI dependency: whitelisted tweet attributes from a JSON or form body."""
    payload = await _read_payload(request)
    fields: Dict[str, Any] = {}
    if "content" in payload.model_fields_set:
        fields["content"] = payload.content
    if "media" in payload.model_fields_set:
        fields["media"] = await read_media_upload(payload.media) if payload.media is not None else None
    return TweetChanges(**fields)


# ══════════════════════════════════════════════════════════════════════════
# Tweets
# ══════════════════════════════════════════════════════════════════════════

@router.get(
    "/tweets",
    response_model=List[TweetResponse],
    summary="List all tweets",
)
async def list_tweets(db: AsyncSession = Depends(get_db_session)) -> List[TweetResponse]:
    return await tweet_service.list_tweets(db)


@router.get(
    "/tweets/{tweet_id}",
    response_model=TweetResponse,
    responses={404: {"description": "Tweet not found", "model": ErrorResponse}},
    summary="Get a single tweet",
)
async def get_tweet(
    tweet_id: int,
    db: AsyncSession = Depends(get_db_session),
) -> TweetResponse:
    return await tweet_service.get_tweet(db, tweet_id)


@router.post(
    "/tweets",
    status_code=201,
    response_model=TweetResponse,
    responses={422: {"description": "Validation failed", "model": ErrorResponse}},
    summary="Create a tweet",
    description="Create a root tweet with content (max 140 characters), an image, or both.",
)
async def create_tweet(
    changes: TweetChanges = Depends(read_tweet_changes),
    db: AsyncSession = Depends(get_db_session),
) -> TweetResponse:
    return await tweet_service.create_tweet(db, changes)


@router.api_route(
    "/tweets/{tweet_id}",
    methods=["PATCH", "PUT"],
    status_code=204,
    response_class=Response,
    responses={
        404: {"description": "Tweet not found", "model": ErrorResponse},
        422: {"description": "Validation failed", "model": ErrorResponse},
    },
    summary="Update a tweet's content or media",
)
async def update_tweet(
    tweet_id: int,
    changes: TweetChanges = Depends(read_tweet_changes),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await tweet_service.update_tweet(db, tweet_id, changes)
    return Response(status_code=204)


@router.delete(
    "/tweets/{tweet_id}",
    status_code=204,
    response_class=Response,
    responses={404: {"description": "Tweet not found", "model": ErrorResponse}},
    summary="Delete a tweet and everything derived from it",
)
async def delete_tweet(
    tweet_id: int,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await tweet_service.delete_tweet(db, tweet_id)
    return Response(status_code=204)


# ══════════════════════════════════════════════════════════════════════════
# Retweets, Quote Tweets, Replies
# ══════════════════════════════════════════════════════════════════════════

def _register_child_routes(segment: str, kind: TweetKind) -> None:
    label = segment.replace("_", " ")

    @router.post(
        f"/tweets/{{tweet_id}}/{segment}",
        status_code=201,
        response_model=TweetResponse,
        responses={
            404: {"description": "Tweet not found", "model": ErrorResponse},
            422: {"description": "Validation failed", "model": ErrorResponse},
        },
        summary=f"Create one of a tweet's {label}",
        name=f"create_{kind.value}",
    )
    async def create_child(
        tweet_id: int,
        changes: TweetChanges = Depends(read_tweet_changes),
        db: AsyncSession = Depends(get_db_session),
    ) -> TweetResponse:
        return await tweet_service.create_child(db, tweet_id, kind, changes)

    @router.get(
        f"/tweets/{{tweet_id}}/{segment}",
        response_model=List[TweetResponse],
        responses={404: {"description": "Tweet not found", "model": ErrorResponse}},
        summary=f"List a tweet's {label}",
        name=f"list_{segment}",
    )
    async def list_children(
        tweet_id: int,
        db: AsyncSession = Depends(get_db_session),
    ) -> List[TweetResponse]:
        return await tweet_service.list_children(db, tweet_id, kind)


for _segment, _kind in CHILD_ROUTES.items():
    _register_child_routes(_segment, _kind)
