"""
Tests for @tag parsing.

Run with: pytest service/tests/test_tags.py -v
"""

import pytest

from sessionbot.errors import AmbiguousAddressing, InvalidTag
from sessionbot.routing.tags import DEFAULT_TAG, normalize_tag, parse_tag


class TestParseTag:
    """Test tag extraction from raw messages."""

    # =========================================================================
    # NO MARKER
    # =========================================================================

    def test_no_tag_uses_default(self):
        result = parse_tag("hello")
        assert result.tag == DEFAULT_TAG
        assert result.body == "hello"
        assert result.explicit is False

    def test_no_tag_keeps_body_unchanged(self):
        text = "  two  spaces\nand a newline "
        assert parse_tag(text).body == text

    def test_custom_default_tag(self):
        assert parse_tag("hello", default_tag="main").tag == "main"

    def test_email_is_not_a_tag(self):
        result = parse_tag("write to bob@example.com please")
        assert result.tag == DEFAULT_TAG
        assert result.body == "write to bob@example.com please"

    # =========================================================================
    # ONE MARKER
    # =========================================================================

    def test_leading_tag(self):
        result = parse_tag("@s1 summarize the report")
        assert result.tag == "s1"
        assert result.body == "summarize the report"
        assert result.explicit is True

    def test_trailing_tag(self):
        result = parse_tag("hello @s1")
        assert result.tag == "s1"
        assert result.body == "hello"

    def test_tag_in_the_middle(self):
        result = parse_tag("hello @s1 world")
        assert result.tag == "s1"
        assert result.body == "hello world"

    def test_tag_is_lowercased(self):
        assert parse_tag("@S1 hi").tag == "s1"

    def test_trailing_punctuation_stays_in_body(self):
        result = parse_tag("hi @s1, how are you?")
        assert result.tag == "s1"
        assert result.body == "hi, how are you?"

    def test_tag_before_newline(self):
        result = parse_tag("@s2\nline one\nline two")
        assert result.tag == "s2"
        assert result.body == "line one\nline two"

    def test_tag_alone_gives_empty_body(self):
        result = parse_tag("@s1")
        assert result.tag == "s1"
        assert result.body == ""

    def test_explicit_default_tag(self):
        result = parse_tag("@default hi")
        assert result.tag == DEFAULT_TAG
        assert result.explicit is True

    def test_deterministic(self):
        assert parse_tag("hello @s1 world") == parse_tag("hello @s1 world")

    # =========================================================================
    # ERRORS
    # =========================================================================

    def test_two_tags_are_ambiguous(self):
        with pytest.raises(AmbiguousAddressing) as exc:
            parse_tag("@s1 ask @s2 about it")
        assert "@s1" in exc.value.message
        assert "@s2" in exc.value.message

    def test_same_tag_twice_is_still_ambiguous(self):
        with pytest.raises(AmbiguousAddressing):
            parse_tag("@s1 and @s1")

    def test_bare_marker_is_invalid(self):
        with pytest.raises(InvalidTag):
            parse_tag("hello @ there")

    def test_non_alphanumeric_tag_is_invalid(self):
        with pytest.raises(InvalidTag):
            parse_tag("@foo-bar hi")

    def test_non_ascii_tag_is_invalid(self):
        with pytest.raises(InvalidTag):
            parse_tag("@сессия hi")

    def test_too_long_tag_is_invalid(self):
        with pytest.raises(InvalidTag):
            parse_tag("@" + "a" * 33 + " hi")


class TestNormalizeTag:
    def test_lowercases(self):
        assert normalize_tag("Agent2") == "agent2"

    def test_strips_whitespace(self):
        assert normalize_tag(" s1 ") == "s1"

    def test_empty(self):
        with pytest.raises(InvalidTag):
            normalize_tag("")

    def test_underscore_rejected(self):
        with pytest.raises(InvalidTag):
            normalize_tag("my_tag")
