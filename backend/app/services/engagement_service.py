"""
Chirpline Backend: Like and Bookmark Service
==============================================

What:  Creates likes and bookmarks for existing tweets.
How:   Looks up the tweet, then inserts a row referencing it.
Who:   Called by POST /likes and POST /bookmarks.

A like or bookmark for an id with no tweet behind it is rejected the same
way a record with a missing required association would be: a 422 carrying
"Validation failed: Tweet must exist".
"""

import logging
from typing import Type, TypeVar, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DatabaseError, ValidationError
from app.models import Bookmark, Like, Tweet, is_storable_id
from app.schemas.tweet import BookmarkResponse, LikeResponse
from app.services.validation import ValidationErrors

logger = logging.getLogger(__name__)

Engagement = TypeVar("Engagement", Like, Bookmark)


class EngagementService:
    """Creates the child rows that only reference a tweet."""

    async def create_like(self, db: AsyncSession, tweet_id: int) -> LikeResponse:
        like = await self._create(db, Like, tweet_id)
        return LikeResponse.from_like(like)

    async def create_bookmark(self, db: AsyncSession, tweet_id: int) -> BookmarkResponse:
        bookmark = await self._create(db, Bookmark, tweet_id)
        return BookmarkResponse.from_bookmark(bookmark)

    async def _create(
        self, db: AsyncSession, model: Type[Engagement], tweet_id: int
    ) -> Union[Like, Bookmark]:
        try:
            tweet = await db.get(Tweet, tweet_id) if is_storable_id(tweet_id) else None
            if tweet is None:
                errors = ValidationErrors()
                errors.add("tweet", "must exist")
                raise ValidationError(message=errors.summary(), errors=errors.as_dict())

            row = model(tweet_id=tweet_id)
            db.add(row)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to create %s for tweet %s: %s", model.__tablename__, tweet_id, str(e))
            raise DatabaseError(
                message="Could not save your request. Please try again.",
                context={"tweet_id": tweet_id, "table": model.__tablename__},
            ) from e

        logger.info("%s %s created for tweet %s", model.__name__, row.id, tweet_id)
        return row


engagement_service = EngagementService()
