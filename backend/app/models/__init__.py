"""ORM models. Importing this package registers every table with Base.metadata."""

from app.models.tweet import MAX_ID, Tweet, TweetKind, is_storable_id
from app.models.engagement import Bookmark, Like

__all__ = ["MAX_ID", "Tweet", "TweetKind", "Like", "Bookmark", "is_storable_id"]
