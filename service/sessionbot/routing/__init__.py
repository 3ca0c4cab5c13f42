"""
Session routing core.

One chat can hold several independent sessions. Messages pick a session with
an @tag ("@s1 summarize this"); untagged messages go to the default session.
"""

from .tags import DEFAULT_TAG, ParsedMessage, normalize_tag, parse_tag
from .factory import SessionFactory
from .directory import SessionDirectory, SessionRecord
from .router import Router, format_reply
from .commands import SessionCommands

__all__ = [
    "DEFAULT_TAG",
    "ParsedMessage",
    "normalize_tag",
    "parse_tag",
    "SessionFactory",
    "SessionDirectory",
    "SessionRecord",
    "Router",
    "format_reply",
    "SessionCommands",
]
