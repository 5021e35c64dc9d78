"""
Chirpline Backend: Tweet Validation Rule Tests
================================================

What:  The four tweet rules and how their results are collected.
How:   Pure function calls; no database, no files.
"""

from types import SimpleNamespace

from app.models import TweetKind
from app.services.validation import (
    TweetCandidate,
    ValidationErrors,
    ValidationLimits,
    check_content_length,
    full_message,
    validate_tweet,
)

TWO_MB = 2 * 1024 * 1024


def media(content_type="image/jpeg", byte_size=1024):
    return SimpleNamespace(content_type=content_type, byte_size=byte_size)


class TestBlankRule:

    def test_root_tweet_without_content_or_media_is_blank(self):
        errors = validate_tweet(TweetCandidate())
        assert errors["base"] == ["tweet can not be blank"]

    def test_whitespace_only_content_is_blank(self):
        errors = validate_tweet(TweetCandidate(content="   \n\t"))
        assert "base" in errors

    def test_content_alone_is_enough(self):
        assert not validate_tweet(TweetCandidate(content="some content"))

    def test_media_alone_is_enough(self):
        assert not validate_tweet(TweetCandidate(media=media()))

    def test_derived_tweets_are_exempt(self):
        for kind in TweetKind:
            errors = validate_tweet(TweetCandidate(parent_id=1, kind=kind))
            assert not errors, kind


class TestContentLength:

    def test_140_characters_is_valid(self):
        assert not validate_tweet(TweetCandidate(content="a" * 140))

    def test_141_characters_is_invalid(self):
        errors = validate_tweet(TweetCandidate(content="a" * 141))
        assert errors["content"] == ["character limit of 140 exceeded!"]

    def test_length_applies_to_derived_tweets(self):
        errors = validate_tweet(
            TweetCandidate(content="a" * 141, parent_id=3, kind=TweetKind.QUOTE_TWEET)
        )
        assert "content" in errors

    def test_limit_is_configurable(self):
        limits = ValidationLimits(max_content_length=5)
        errors = validate_tweet(TweetCandidate(content="toolong"), limits=limits)
        assert errors["content"] == ["character limit of 5 exceeded!"]


class TestMediaType:

    def test_jpeg_png_jpg_are_supported(self):
        for content_type in ("image/jpeg", "image/png", "image/jpg"):
            assert not validate_tweet(TweetCandidate(media=media(content_type))), content_type

    def test_content_type_is_case_insensitive(self):
        assert not validate_tweet(TweetCandidate(media=media("IMAGE/PNG")))

    def test_csv_is_rejected(self):
        errors = validate_tweet(TweetCandidate(media=media("text/csv")))
        assert errors["media"] == ["is not a supported media type"]

    def test_gif_is_rejected(self):
        errors = validate_tweet(TweetCandidate(content="hi", media=media("image/gif")))
        assert errors["media"] == ["is not a supported media type"]


class TestMediaSize:

    def test_exactly_two_megabytes_is_valid(self):
        assert not validate_tweet(TweetCandidate(media=media(byte_size=TWO_MB)))

    def test_one_byte_over_is_invalid(self):
        errors = validate_tweet(TweetCandidate(media=media(byte_size=TWO_MB + 1)))
        assert errors["media"] == ["image size exceeds the 2MB limit!"]


class TestCollection:

    def test_all_rules_run(self):
        candidate = TweetCandidate(content="a" * 141, media=media("text/csv", TWO_MB + 1))
        errors = validate_tweet(candidate)
        assert errors.as_dict() == {
            "content": ["character limit of 140 exceeded!"],
            "media": ["is not a supported media type", "image size exceeds the 2MB limit!"],
        }

    def test_summary_uses_first_message_per_field(self):
        candidate = TweetCandidate(content="a" * 141, media=media("text/csv", TWO_MB + 1))
        assert validate_tweet(candidate).summary() == (
            "Validation failed: Content character limit of 140 exceeded!, "
            "Media is not a supported media type"
        )

    def test_blank_summary_has_no_field_prefix(self):
        assert validate_tweet(TweetCandidate()).summary() == "Validation failed: tweet can not be blank"

    def test_custom_rule_list(self):
        errors = validate_tweet(TweetCandidate(), rules=[check_content_length])
        assert not errors

    def test_full_message_humanizes_field(self):
        assert full_message("media_type", "is odd") == "Media type is odd"
        assert full_message("base", "tweet can not be blank") == "tweet can not be blank"

    def test_empty_errors_are_falsy(self):
        errors = ValidationErrors()
        assert not errors
        errors.add("content", "is wrong")
        assert errors
        assert errors.first_per_field() == {"content": "is wrong"}
