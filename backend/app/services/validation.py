"""
Chirpline Backend: Tweet Validation Rules
===========================================

What:  The field rules every tweet write must satisfy.
How:   Each rule is a plain function that inspects a TweetCandidate and
       yields (field, message) pairs. validate_tweet() runs every rule and
       collects everything they report; no rule stops the others.
Who:   Called by TweetService before any insert or update reaches the session.

Rules:
    check_not_blank       base     "tweet can not be blank"
    check_content_length  content  "character limit of 140 exceeded!"
    check_media_type      media    "is not a supported media type"
    check_media_size      media    "image size exceeds the 2MB limit!"

The functions touch neither the database nor the filesystem, so media is
validated from its declared content type and size before any bytes are
stored.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterable, Iterator, List, Optional, Protocol, Sequence, Tuple

from app.config import settings
from app.models.tweet import TweetKind

BASE = "base"
BLANK_TWEET_MESSAGE = "tweet can not be blank"
UNSUPPORTED_MEDIA_MESSAGE = "is not a supported media type"


class MediaDescriptor(Protocol):
    """Anything that can describe an attachment: an upload or stored media."""

    content_type: str
    byte_size: int


@dataclass(frozen=True)
class ValidationLimits:
    max_content_length: int = field(default_factory=lambda: settings.tweet_max_length)
    max_media_bytes: int = field(default_factory=lambda: settings.media_max_bytes)
    supported_media_types: FrozenSet[str] = field(
        default_factory=lambda: settings.media_allowed_types_set
    )


@dataclass(frozen=True)
class TweetCandidate:
    """The values a tweet would have after the pending write."""

    content: Optional[str] = None
    media: Optional[MediaDescriptor] = None
    parent_id: Optional[int] = None
    kind: Optional[TweetKind] = None

    @property
    def is_root(self) -> bool:
        return self.parent_id is None and self.kind is None


Violation = Tuple[str, str]
Rule = Callable[[TweetCandidate, ValidationLimits], Iterable[Violation]]


class ValidationErrors:
    """Ordered field -> messages map, in the order the rules reported them."""

    def __init__(self) -> None:
        self._errors: "OrderedDict[str, List[str]]" = OrderedDict()

    def add(self, field_name: str, message: str) -> None:
        self._errors.setdefault(field_name, []).append(message)

    def __bool__(self) -> bool:
        return bool(self._errors)

    def __contains__(self, field_name: str) -> bool:
        return field_name in self._errors

    def __getitem__(self, field_name: str) -> List[str]:
        return list(self._errors.get(field_name, []))

    def __iter__(self) -> Iterator[str]:
        return iter(self._errors)

    def as_dict(self) -> Dict[str, List[str]]:
        return {name: list(messages) for name, messages in self._errors.items()}

    def first_per_field(self) -> Dict[str, str]:
        return {name: messages[0] for name, messages in self._errors.items()}

    def full_messages(self) -> List[str]:
        """First message of each field, prefixed with the humanized field name."""
        return [
            full_message(name, message)
            for name, message in self.first_per_field().items()
        ]

    def summary(self) -> str:
        return "Validation failed: " + ", ".join(self.full_messages())


def full_message(field_name: str, message: str) -> str:
    """'media', 'is not ...' -> 'Media is not ...'; base messages stay as-is."""
    if field_name == BASE:
        return message
    label = field_name.replace("_", " ").capitalize()
    return f"{label} {message}"


def is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _megabytes(byte_count: int) -> str:
    return f"{byte_count / (1024 * 1024):g}MB"


# ══════════════════════════════════════════════════════════════════════════
# Rules
# ══════════════════════════════════════════════════════════════════════════

def check_not_blank(candidate: TweetCandidate, limits: ValidationLimits) -> Iterable[Violation]:
    # Derived tweets may carry neither content nor media
    if candidate.is_root and is_blank(candidate.content) and candidate.media is None:
        yield BASE, BLANK_TWEET_MESSAGE


def check_content_length(candidate: TweetCandidate, limits: ValidationLimits) -> Iterable[Violation]:
    if candidate.content is not None and len(candidate.content) > limits.max_content_length:
        yield "content", f"character limit of {limits.max_content_length} exceeded!"


def check_media_type(candidate: TweetCandidate, limits: ValidationLimits) -> Iterable[Violation]:
    if candidate.media is None:
        return
    content_type = (candidate.media.content_type or "").lower()
    if content_type not in limits.supported_media_types:
        yield "media", UNSUPPORTED_MEDIA_MESSAGE


def check_media_size(candidate: TweetCandidate, limits: ValidationLimits) -> Iterable[Violation]:
    if candidate.media is not None and candidate.media.byte_size > limits.max_media_bytes:
        yield "media", f"image size exceeds the {_megabytes(limits.max_media_bytes)} limit!"


TWEET_RULES: Sequence[Rule] = (
    check_not_blank,
    check_content_length,
    check_media_type,
    check_media_size,
)


def validate_tweet(
    candidate: TweetCandidate,
    limits: Optional[ValidationLimits] = None,
    rules: Sequence[Rule] = TWEET_RULES,
) -> ValidationErrors:
    """
    Run every rule against the candidate.

    Returns:
        ValidationErrors, empty (falsy) when the candidate is valid.
    """
    limits = limits or ValidationLimits()
    errors = ValidationErrors()
    for rule in rules:
        for field_name, message in rule(candidate, limits):
            errors.add(field_name, message)
    return errors
