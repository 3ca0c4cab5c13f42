"""
Telegram Bot module for SessionBot.

ARCHITECTURE: Thin transport layer - NO routing logic duplication!
- Receives updates from Telegram (webhook or polling)
- Authorizes user against the allowed-user list
- Hands text to the session router / session commands
- Returns the tagged response to Telegram
"""

from .bot import handle_telegram_update, initialize_bot, shutdown_bot
from .auth import ensure_authorized, is_user_allowed
from .context import get_services, set_services, close_services

__all__ = [
    "handle_telegram_update",
    "initialize_bot",
    "shutdown_bot",
    "ensure_authorized",
    "is_user_allowed",
    "get_services",
    "set_services",
    "close_services",
]
