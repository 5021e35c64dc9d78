"""
Chirpline Backend: Like and Bookmark Models
=============================================

What:  ORM models for the `likes` and `bookmarks` tables.
How:   Each row references exactly one tweet and carries nothing else
       beyond its id and timestamps.
Who:   Written by EngagementService; removed by TweetService when the
       referenced tweet is deleted.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.tweet import utcnow


class _TweetEngagement:
    """Columns shared by every row that hangs off a single tweet."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tweet_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tweets.id"),
        nullable=False,
        index=True,
    )
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

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(id={self.id}, tweet_id={self.tweet_id})>"


class Like(_TweetEngagement, Base):
    __tablename__ = "likes"


class Bookmark(_TweetEngagement, Base):
    __tablename__ = "bookmarks"
