"""
Error kinds raised by the routing layer.

Every error carries a short user-facing message. Internal detail (provider
messages, HTTP bodies, tracebacks) stays in the logs and never reaches the chat.
"""

from typing import Optional


class RouterError(Exception):
    """Base class for errors that are rendered back to the chat."""

    kind = "error"
    transient = False

    def __init__(self, message: str, tag: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.tag = tag


class InvalidTag(RouterError):
    kind = "invalid_tag"


class AmbiguousAddressing(RouterError):
    kind = "ambiguous_addressing"


class UnknownSession(RouterError):
    kind = "unknown_session"


class SessionCreationFailed(RouterError):
    kind = "session_creation_failed"
    transient = True


class ExternalSubsystemUnavailable(RouterError):
    kind = "external_subsystem_unavailable"
    transient = True


class Unauthorized(RouterError):
    kind = "unauthorized"


def render_error(error: RouterError, default_tag: str) -> str:
    """Render an error as a short, tag-prefixed chat message."""
    tag = error.tag or default_tag
    text = f"[{tag}] ⚠️ {error.message}"
    if error.transient:
        text += "\nPlease try again in a moment."
    return text


def render_unexpected(tag: str) -> str:
    """Message for failures that are not RouterErrors (bugs, unmapped exceptions)."""
    return f"[{tag}] ❌ Something went wrong while processing your message.\nTry again or use /help"
