"""
Logging for SessionBot.

Everything the service logs goes through the "sessionbot" logger to stdout.
Library loggers that print Telegram API URLs (httpx, telegram) carry the bot
token in those URLs, so they are held at WARNING and their output is masked.
"""

import logging
import re
import sys
from typing import Optional

LOG_FORMAT = '[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s'
NOISY_LOGGERS = ("httpx", "httpcore", "telegram", "apscheduler")

# https://api.telegram.org/bot123456:AAH.../getUpdates
_TOKEN_RE = re.compile(r"bot\d+:[A-Za-z0-9_-]+")


class TokenMaskFilter(logging.Filter):
    """Replace Telegram bot tokens in log records with a placeholder."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = _TOKEN_RE.sub("bot<token>", message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def setup_logging(level: str = "INFO", library_level: Optional[str] = None) -> logging.Logger:
    """Configure the sessionbot logger and quiet the HTTP/Telegram libraries."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    handler.addFilter(TokenMaskFilter())

    logger = logging.getLogger("sessionbot")
    logger.setLevel(level.upper())
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.propagate = False

    for name in NOISY_LOGGERS:
        library_logger = logging.getLogger(name)
        library_logger.setLevel((library_level or "WARNING").upper())
        if not any(isinstance(f, TokenMaskFilter) for f in library_logger.filters):
            library_logger.addFilter(TokenMaskFilter())

    return logger


bot_logger = setup_logging()
