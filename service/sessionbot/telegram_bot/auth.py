"""
Authorization for Telegram users.

TELEGRAM_BOT_ALLOWED_USERS lists numeric user ids and/or usernames
("12345, @alice bob"). An empty list lets everyone in.
"""

from typing import Optional, Sequence

from sessionbot.config import get_settings
from sessionbot.errors import Unauthorized
from sessionbot.logging_config import bot_logger as logger


def is_user_allowed(user_id: int, username: Optional[str], allowed: Sequence[str]) -> bool:
    """Check a Telegram user against normalized allowed-user entries."""
    if not allowed:
        return True
    if str(user_id) in allowed:
        return True
    return bool(username) and username.lstrip("@").lower() in allowed


def ensure_authorized(user_id: int, username: Optional[str] = None) -> None:
    """Raise Unauthorized if the user is not on the allowed list."""
    settings = get_settings()
    if not is_user_allowed(user_id, username, settings.allowed_users):
        logger.warning(f"Rejected telegram_id={user_id}, username={username}: not in allowed users")
        raise Unauthorized("You are not allowed to use this bot.")
