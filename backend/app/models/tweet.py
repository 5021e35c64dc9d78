"""
Chirpline Backend: Tweet SQLAlchemy Model
===========================================

What:  ORM model for the `tweets` table and the TweetKind variant.
How:   Inherits from the shared DeclarativeBase; Alembic reads this for migrations.
Who:   Used by TweetService for CRUD operations and by Alembic.

Table Design:
    One table holds every tweet. Retweets, quote tweets and replies are rows
    whose `tweet_id` points back at their parent, tagged by one of three
    boolean flags. The flags are written once, at creation, from a single
    TweetKind value, so at most one of them is ever true.

    Media is a single optional attachment described by four columns; the
    bytes live in the media store under `media_path`.
"""

import enum
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Largest value an INTEGER key column holds (PostgreSQL int4)
MAX_ID = 2_147_483_647


def is_storable_id(value: int) -> bool:
    """False for ids no row can have; lookups treat them as missing."""
    return 1 <= value <= MAX_ID


class TweetKind(str, enum.Enum):
    """Relationship of a derived tweet to its parent."""

    RETWEET = "retweet"
    QUOTE_TWEET = "quote_tweet"
    REPLY = "reply"

    @property
    def flag(self) -> str:
        """Name of the boolean column that marks this kind."""
        return f"is_{self.value}"


class StoredMedia:
    """Descriptor of a tweet's persisted attachment, as seen by validation."""

    def __init__(self, content_type: str, byte_size: int):
        self.content_type = content_type
        self.byte_size = byte_size


class Tweet(Base):
    """
    A root tweet or a tweet derived from a parent.

    Lifecycle:
        1. Created via POST /tweets (root) or POST /tweets/{id}/<kind> (derived)
        2. Content/media replaced via PATCH; parent linkage never changes
        3. Deleted explicitly, or along with its parent
    """

    __tablename__ = "tweets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ── Parent Linkage ────────────────────────────────────────────────────
    tweet_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("tweets.id"),
        nullable=True,
        index=True,
    )
    is_retweet: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    is_quote_tweet: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    is_reply: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    # ── Media Attachment ──────────────────────────────────────────────────
    # media_path is relative to settings.storage_root (YYYY/MM/DD/<uuid>.<ext>)
    media_path: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    media_filename: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    media_content_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    media_byte_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    @property
    def kind(self) -> Optional[TweetKind]:
        """The tweet's relationship to its parent; None for a root tweet."""
        for kind in TweetKind:
            if getattr(self, kind.flag):
                return kind
        return None

    @property
    def is_root(self) -> bool:
        return self.tweet_id is None and self.kind is None

    @property
    def media(self) -> Optional[StoredMedia]:
        if self.media_path is None:
            return None
        return StoredMedia(
            content_type=self.media_content_type or "",
            byte_size=self.media_byte_size or 0,
        )

    def clear_media(self) -> None:
        self.media_path = None
        self.media_filename = None
        self.media_content_type = None
        self.media_byte_size = None

    def __repr__(self) -> str:
        return f"<Tweet(id={self.id}, tweet_id={self.tweet_id}, kind={self.kind})>"
