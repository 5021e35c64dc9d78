"""
Chirpline Backend: Tweet Request/Response Schemas
===================================================

What:  Pydantic models defining the API contract for tweets, likes and bookmarks.
How:   FastAPI uses these models to validate request bodies, serialize
       responses, and generate the OpenAPI documentation.

Schemas are separate from the SQLAlchemy models: the media columns collapse
into `media_attached` / `media_url`, and the storage path never leaves the
server in raw form.
"""

from datetime import datetime
from typing import Any, Optional

from fastapi import UploadFile
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models import Bookmark, Like, Tweet

MEDIA_URL_PREFIX = "/media"


class TweetPayload(BaseModel):
    """
    Body of tweet create, update and child-create requests.

    Sent as JSON or as a form. Only `content` and `media` are read; parent
    linkage and kind flags in the body are ignored. `model_fields_set`
    tells which of the two were sent.
    """

    model_config = ConfigDict(extra="ignore")

    content: Optional[str] = Field(default=None, description="Tweet text (max 140 characters)")
    media: Optional[UploadFile] = Field(default=None, description="Image file (multipart only); null removes it")

    @field_validator("media", mode="before")
    @classmethod
    def empty_media_detaches(cls, v: Any) -> Any:
        # An empty form field is how HTML forms send "no file"
        return None if isinstance(v, str) and v == "" else v


class TweetResponse(BaseModel):
    """A tweet as returned by every tweet endpoint."""

    id: int = Field(description="Tweet identifier")
    content: Optional[str] = Field(default=None, description="Tweet text (max 140 characters)")
    tweet_id: Optional[int] = Field(default=None, description="Parent tweet id for derived tweets")
    is_retweet: bool = Field(default=False)
    is_quote_tweet: bool = Field(default=False)
    is_reply: bool = Field(default=False)
    media_attached: bool = Field(default=False, description="Whether an image is attached")
    media_url: Optional[str] = Field(default=None, description="URL path of the attached image")
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_tweet(cls, tweet: Tweet) -> "TweetResponse":
        return cls(
            id=tweet.id,
            content=tweet.content,
            tweet_id=tweet.tweet_id,
            is_retweet=tweet.is_retweet,
            is_quote_tweet=tweet.is_quote_tweet,
            is_reply=tweet.is_reply,
            media_attached=tweet.media_path is not None,
            media_url=f"{MEDIA_URL_PREFIX}/{tweet.media_path}" if tweet.media_path else None,
            created_at=tweet.created_at,
            updated_at=tweet.updated_at,
        )


class EngagementCreate(BaseModel):
    """Body of POST /likes and POST /bookmarks."""

    tweet_id: int = Field(description="Tweet being liked or bookmarked")


class EngagementResponse(BaseModel):
    id: int
    tweet_id: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class LikeResponse(EngagementResponse):
    @classmethod
    def from_like(cls, like: Like) -> "LikeResponse":
        return cls.model_validate(like)


class BookmarkResponse(EngagementResponse):
    @classmethod
    def from_bookmark(cls, bookmark: Bookmark) -> "BookmarkResponse":
        return cls.model_validate(bookmark)
