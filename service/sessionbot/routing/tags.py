"""
Tag parser - extracts the @tag addressing a session from a message.

Rules:
- A marker is '@' at the start of the text or after whitespace, so e-mail
  addresses like bob@example.com are left alone.
- Trailing punctuation is not part of the tag: "hi @s1, there" -> tag s1,
  body "hi, there".
- No marker -> default tag, body unchanged.
- More than one marker -> AmbiguousAddressing (never guess which one was meant).
"""

import re
from dataclasses import dataclass

from sessionbot.errors import AmbiguousAddressing, InvalidTag

DEFAULT_TAG = "default"
TAG_MARKER = "@"
MAX_TAG_LENGTH = 32

_MARKER_RE = re.compile(r"(?<!\S)@(\S*)")
_TAG_RE = re.compile(r"^[a-z0-9]+$")
_TRAILING_PUNCTUATION = ".,;:!?"


@dataclass(frozen=True)
class ParsedMessage:
    tag: str
    body: str
    explicit: bool = False


def normalize_tag(identifier: str) -> str:
    """
    Validate and normalize a tag identifier (without the '@').

    Raises InvalidTag if the identifier is empty, too long or not alphanumeric.
    """
    tag = identifier.strip().lower()
    if not tag:
        raise InvalidTag("Empty tag. Use @name, e.g. @s1.")
    if len(tag) > MAX_TAG_LENGTH or not _TAG_RE.match(tag):
        raise InvalidTag(
            f"Invalid tag '{TAG_MARKER}{identifier[:MAX_TAG_LENGTH]}'. "
            f"Tags are letters and digits only, up to {MAX_TAG_LENGTH} characters."
        )
    return tag


def join_segments(left: str, right: str) -> str:
    """Join the text around a removed token with at most one space, never before punctuation."""
    left = left.rstrip(" \t")
    right = right.lstrip(" \t")
    if not left or not right:
        return left + right
    if left.endswith("\n") or right.startswith("\n") or right[0] in _TRAILING_PUNCTUATION:
        return left + right
    return f"{left} {right}"


def parse_tag(text: str, default_tag: str = DEFAULT_TAG) -> ParsedMessage:
    """
    Split a raw message into (tag, body).

    Returns the default tag and the unchanged text when no marker is present.
    """
    markers = list(_MARKER_RE.finditer(text))

    if not markers:
        return ParsedMessage(tag=default_tag, body=text, explicit=False)

    if len(markers) > 1:
        found = ", ".join(m.group(0).rstrip(_TRAILING_PUNCTUATION) for m in markers)
        raise AmbiguousAddressing(
            f"Message addresses more than one session ({found}). "
            f"Send one message per session."
        )

    match = markers[0]
    identifier = match.group(1).rstrip(_TRAILING_PUNCTUATION)
    tag = normalize_tag(identifier)

    # Only '@' + identifier is consumed; trailing punctuation stays in the body
    end = match.start() + len(TAG_MARKER) + len(identifier)
    body = join_segments(text[:match.start()], text[end:]).strip()

    return ParsedMessage(tag=tag, body=body, explicit=True)
