"""
Tests for logging setup: levels and bot token masking.
"""

import logging

from sessionbot.logging_config import TokenMaskFilter, setup_logging


def make_record(msg, *args):
    return logging.LogRecord("httpx", logging.INFO, __file__, 1, msg, args, None)


class TestTokenMaskFilter:
    def test_masks_token_in_url(self):
        record = make_record(
            'HTTP Request: %s "%s"', "POST", "https://api.telegram.org/bot123456:AAH-x_y9/getUpdates"
        )

        assert TokenMaskFilter().filter(record) is True
        assert record.getMessage() == 'HTTP Request: POST "https://api.telegram.org/bot<token>/getUpdates"'

    def test_leaves_other_messages_alone(self):
        record = make_record("chat_id=%s: routed", 5)

        TokenMaskFilter().filter(record)

        assert record.getMessage() == "chat_id=5: routed"
        assert record.args == (5,)


class TestSetupLogging:
    def test_levels(self):
        logger = setup_logging("debug")

        assert logger.name == "sessionbot"
        assert logger.level == logging.DEBUG
        assert logger.propagate is False
        assert len(logger.handlers) == 1
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("telegram").level == logging.WARNING

        setup_logging("INFO")

    def test_repeated_setup_does_not_stack_filters(self):
        setup_logging()
        setup_logging()

        filters = [f for f in logging.getLogger("httpx").filters if isinstance(f, TokenMaskFilter)]
        assert len(filters) == 1
