"""
Chirpline Backend: Tweet Service
==================================

What:  Create, read, update and delete tweets, and resolve a tweet's
       retweets, quote tweets and replies.
How:   Runs the validation rules, writes media through MediaService, and
       issues SQLAlchemy statements on the request's session.
Who:   Called by the tweet route handlers.

Write Flow (create / create_child / update):
    ┌───────────┐    ┌─────────────┐    ┌─────────────┐    ┌──────────┐
    │  Merge    │───▶│  Validate   │───▶│ Store media │───▶│  Flush   │
    │  changes  │    │  (rules)    │    │ (if any)    │    │  (DB)    │
    └───────────┘    └─────────────┘    └─────────────┘    └──────────┘

    Nothing touches disk or the session until validation passes. A newly
    stored file is removed again if the flush fails or the transaction
    later rolls back.

Cascade Delete:
    Deleting a tweet removes every tweet that points at it, recursively,
    along with all their likes and bookmarks. Statements run in a fixed
    order (likes, bookmarks, then tweets from the deepest level up to the
    parent) on the request session, so the whole cascade commits or rolls
    back as one transaction. Detached and deleted media files are removed
    only once the commit has gone through.
"""

import logging
from functools import partial
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import after_commit, after_rollback
from app.exceptions import DatabaseError, NotFoundError, ValidationError
from app.models import Bookmark, Like, Tweet, TweetKind, is_storable_id
from app.schemas.tweet import TweetResponse
from app.services.media_service import MediaUpload, media_service
from app.services.validation import TweetCandidate, validate_tweet

logger = logging.getLogger(__name__)


class TweetChanges(BaseModel):
    """
    Whitelisted attributes supplied by a request.

    Only fields in `model_fields_set` were sent; the rest keep their stored
    value on update. An explicit `media=None` removes the attachment.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    content: Optional[str] = None
    media: Optional[MediaUpload] = None

    def has(self, name: str) -> bool:
        return name in self.model_fields_set


class TweetService:
    """Business logic for tweets and their derived collections."""

    # ── Queries ───────────────────────────────────────────────────────────

    async def list_tweets(self, db: AsyncSession) -> List[TweetResponse]:
        try:
            result = await db.execute(select(Tweet).order_by(Tweet.id))
            return [TweetResponse.from_tweet(tweet) for tweet in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error("Database error listing tweets: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve tweets. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

    async def get_tweet(self, db: AsyncSession, tweet_id: int) -> TweetResponse:
        """
        Raises:
            NotFoundError: no tweet with this id (→ 404 "Tweet not found")
        """
        tweet = await self._load(db, tweet_id)
        return TweetResponse.from_tweet(tweet)

    async def list_children(
        self, db: AsyncSession, parent_id: int, kind: TweetKind
    ) -> List[TweetResponse]:
        """The retweets, quote tweets or replies of a tweet, oldest first."""
        await self._load(db, parent_id)
        try:
            result = await db.execute(
                select(Tweet)
                .where(Tweet.tweet_id == parent_id)
                .where(getattr(Tweet, kind.flag).is_(True))
                .order_by(Tweet.id)
            )
            return [TweetResponse.from_tweet(tweet) for tweet in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error("Database error listing %s of tweet %s: %s", kind.value, parent_id, str(e))
            raise DatabaseError(
                message="Could not retrieve tweets. Please try again.",
                context={"tweet_id": parent_id, "kind": kind.value},
            ) from e

    # ── Writes ────────────────────────────────────────────────────────────

    async def create_tweet(self, db: AsyncSession, changes: TweetChanges) -> TweetResponse:
        """
        Create a root tweet.

        Raises:
            ValidationError: blank tweet, content too long, bad media (→ 422)
        """
        tweet = await self._insert(db, changes)
        logger.info("Tweet %s created", tweet.id)
        return TweetResponse.from_tweet(tweet)

    async def create_child(
        self,
        db: AsyncSession,
        parent_id: int,
        kind: TweetKind,
        changes: TweetChanges,
    ) -> TweetResponse:
        """
        Create a retweet, quote tweet or reply of an existing tweet.

        The blank rule does not apply, so an empty request yields a plain
        retweet. Length and media rules still do.

        Raises:
            NotFoundError: the parent does not exist (→ 404)
            ValidationError: content or media rules failed (→ 422)
        """
        await self._load(db, parent_id)
        tweet = await self._insert(db, changes, parent_id=parent_id, kind=kind)
        logger.info("Tweet %s created as %s of %s", tweet.id, kind.value, parent_id)
        return TweetResponse.from_tweet(tweet)

    async def update_tweet(
        self, db: AsyncSession, tweet_id: int, changes: TweetChanges
    ) -> Optional[str]:
        """
        Replace a tweet's content and/or media.

        Supplied fields are merged over the stored ones and the merged tweet
        is validated as a whole, stored media included. Parent linkage and
        kind flags are not part of TweetChanges and never change.

        Returns:
            Relative path of a media file the update detached or replaced,
            None otherwise. The file is removed once the session commits.

        Raises:
            NotFoundError (→ 404), ValidationError (→ 422)
        """
        tweet = await self._load(db, tweet_id)

        content = changes.content if changes.has("content") else tweet.content
        media = changes.media if changes.has("media") else tweet.media
        self._raise_if_invalid(
            TweetCandidate(content=content, media=media, parent_id=tweet.tweet_id, kind=tweet.kind)
        )

        orphaned_path: Optional[str] = None
        stored_path: Optional[str] = None
        if changes.has("media"):
            orphaned_path = tweet.media_path
            if changes.media is None:
                tweet.clear_media()
            else:
                stored_path = await media_service.store(changes.media)
                self._attach(tweet, changes.media, stored_path)
        tweet.content = content

        await self._flush(db, stored_path, action="update tweet", tweet_id=tweet_id)
        if orphaned_path:
            after_commit(db, partial(media_service.cleanup_file, orphaned_path))
        logger.info("Tweet %s updated", tweet_id)
        return orphaned_path

    async def delete_tweet(self, db: AsyncSession, tweet_id: int) -> List[str]:
        """
        Delete a tweet together with everything that depends on it.

        Returns:
            Relative paths of the media files belonging to removed tweets,
            removed from disk once the session commits.

        Raises:
            NotFoundError (→ 404), DatabaseError (→ 500; nothing is removed
            once the session rolls back)
        """
        await self._load(db, tweet_id)

        try:
            levels = await self._collect_tree(db, tweet_id)
            tweet_ids = [member for level in levels for member in level]

            media_result = await db.execute(
                select(Tweet.media_path)
                .where(Tweet.id.in_(tweet_ids))
                .where(Tweet.media_path.is_not(None))
            )
            media_paths = list(media_result.scalars().all())

            likes = await db.execute(
                delete(Like)
                .where(Like.tweet_id.in_(tweet_ids))
                .execution_options(synchronize_session=False)
            )
            bookmarks = await db.execute(
                delete(Bookmark)
                .where(Bookmark.tweet_id.in_(tweet_ids))
                .execution_options(synchronize_session=False)
            )
            # Children before parents, the requested tweet last
            for level in reversed(levels):
                await db.execute(
                    delete(Tweet)
                    .where(Tweet.id.in_(level))
                    .execution_options(synchronize_session=False)
                )
        except SQLAlchemyError as e:
            logger.error("Cascade delete of tweet %s failed: %s", tweet_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not delete the tweet. Please try again.",
                context={"tweet_id": tweet_id, "error_type": type(e).__name__},
            ) from e

        logger.info(
            "Tweet %s deleted with %d derived tweets, %d likes, %d bookmarks",
            tweet_id,
            len(tweet_ids) - 1,
            likes.rowcount,
            bookmarks.rowcount,
        )
        for path in media_paths:
            after_commit(db, partial(media_service.cleanup_file, path))
        return media_paths

    # ── Internals ─────────────────────────────────────────────────────────

    async def _load(self, db: AsyncSession, tweet_id: int) -> Tweet:
        # Out-of-range ids overflow the driver instead of matching nothing
        if not is_storable_id(tweet_id):
            raise NotFoundError(resource="Tweet", resource_id=tweet_id)
        try:
            tweet = await db.get(Tweet, tweet_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching tweet %s: %s", tweet_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the tweet. Please try again.",
                context={"tweet_id": tweet_id},
            ) from e
        if tweet is None:
            raise NotFoundError(resource="Tweet", resource_id=tweet_id)
        return tweet

    async def _collect_tree(self, db: AsyncSession, root_id: int) -> List[List[int]]:
        """Tweet ids grouped by depth: [[root], [children], [grandchildren], ...]."""
        levels = [[root_id]]
        seen = {root_id}
        frontier = [root_id]
        while frontier:
            result = await db.execute(select(Tweet.id).where(Tweet.tweet_id.in_(frontier)))
            frontier = [child for child in result.scalars().all() if child not in seen]
            if frontier:
                seen.update(frontier)
                levels.append(frontier)
        return levels

    async def _insert(
        self,
        db: AsyncSession,
        changes: TweetChanges,
        parent_id: Optional[int] = None,
        kind: Optional[TweetKind] = None,
    ) -> Tweet:
        content = changes.content
        media = changes.media
        self._raise_if_invalid(
            TweetCandidate(content=content, media=media, parent_id=parent_id, kind=kind)
        )

        tweet = Tweet(
            content=content,
            tweet_id=parent_id,
            is_retweet=kind is TweetKind.RETWEET,
            is_quote_tweet=kind is TweetKind.QUOTE_TWEET,
            is_reply=kind is TweetKind.REPLY,
        )
        stored_path: Optional[str] = None
        if media is not None:
            stored_path = await media_service.store(media)
            self._attach(tweet, media, stored_path)

        db.add(tweet)
        await self._flush(db, stored_path, action="create tweet", tweet_id=parent_id)
        return tweet

    async def _flush(
        self,
        db: AsyncSession,
        stored_path: Optional[str],
        action: str,
        tweet_id: Optional[int],
    ) -> None:
        try:
            await db.flush()
        except SQLAlchemyError as e:
            if stored_path:
                await media_service.cleanup_file(stored_path)
            logger.error("Failed to %s (tweet_id=%s): %s", action, tweet_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save the tweet. Please try again.",
                context={"tweet_id": tweet_id, "error_type": type(e).__name__},
            ) from e
        if stored_path:
            after_rollback(db, partial(media_service.cleanup_file, stored_path))

    @staticmethod
    def _attach(tweet: Tweet, upload: MediaUpload, stored_path: str) -> None:
        tweet.media_path = stored_path
        tweet.media_filename = upload.filename
        tweet.media_content_type = upload.content_type
        tweet.media_byte_size = upload.byte_size

    @staticmethod
    def _raise_if_invalid(candidate: TweetCandidate) -> None:
        errors = validate_tweet(candidate)
        if errors:
            logger.info("Tweet rejected: %s", errors.first_per_field())
            raise ValidationError(message=errors.summary(), errors=errors.as_dict())


tweet_service = TweetService()
