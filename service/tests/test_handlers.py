"""
Tests for the Telegram transport layer: message splitting, bot mentions and
the text/command handlers with mocked Telegram objects.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from sessionbot.config import Settings
from sessionbot.telegram_bot import auth, handlers
from sessionbot.telegram_bot.context import set_services
from sessionbot.telegram_bot.handlers import split_message, strip_bot_mention

CHAT = 555


class TestSplitMessage:
    def test_short_message_unchanged(self):
        assert split_message("[default] hi") == ["[default] hi"]

    def test_empty_message(self):
        assert split_message("") == [""]

    def test_long_message_chunks_fit(self):
        text = "\n\n".join("paragraph " * 50 for _ in range(30))
        chunks = split_message(text)

        assert len(chunks) > 1
        assert all(len(chunk) <= 4096 for chunk in chunks)
        assert "".join(chunks).replace(" ", "").replace("\n", "") == text.replace(" ", "").replace("\n", "")

    def test_prefers_line_breaks(self):
        chunks = split_message("aaaa\nbbbb cccc", max_len=10)
        assert chunks == ["aaaa", "bbbb cccc"]

    def test_hard_cut_for_long_words(self):
        assert split_message("x" * 25, max_len=10) == ["x" * 10, "x" * 10, "x" * 5]


class TestStripBotMention:
    def test_removes_own_mention(self):
        assert strip_bot_mention("@session_bot @s1 hello", "session_bot") == "@s1 hello"

    def test_case_insensitive(self):
        assert strip_bot_mention("hi @Session_Bot there", "session_bot") == "hi there"

    def test_keeps_other_mentions(self):
        assert strip_bot_mention("@s1 hello", "session_bot") == "@s1 hello"

    def test_no_username(self):
        assert strip_bot_mention("@s1 hello", None) == "@s1 hello"

    def test_text_without_mention_is_untouched(self):
        text = "def f():\n    return  1"
        assert strip_bot_mention(text, "session_bot") == text

    def test_mention_before_punctuation(self):
        assert strip_bot_mention("hi @session_bot, there", "session_bot") == "hi, there"

    def test_keeps_indentation_after_leading_mention(self):
        text = "@session_bot fix this:\n    if x:\n        y()"
        assert strip_bot_mention(text, "session_bot") == "fix this:\n    if x:\n        y()"

    def test_longer_username_is_not_a_mention(self):
        assert strip_bot_mention("@session_bot2 hi", "session_bot") == "@session_bot2 hi"


def make_update(text, user_id=1, username="alice"):
    message = SimpleNamespace(text=text, reply_text=AsyncMock())
    return SimpleNamespace(
        effective_user=SimpleNamespace(id=user_id, username=username, first_name="Alice"),
        effective_chat=SimpleNamespace(id=CHAT),
        message=message,
    )


def make_context(args=None):
    bot = SimpleNamespace(username="session_bot", send_chat_action=AsyncMock())
    return SimpleNamespace(bot=bot, args=args or [])


@pytest.fixture
def wired(services, monkeypatch):
    settings = Settings(_env_file=None, telegram_bot_allowed_users="1")
    monkeypatch.setattr(auth, "get_settings", lambda: settings)
    set_services(services)
    yield services
    set_services(None)


def replies(update):
    return [call.args[0] for call in update.message.reply_text.await_args_list]


class TestHandlers:
    @pytest.mark.asyncio
    async def test_text_message_is_routed(self, wired):
        update = make_update("@session_bot hello")
        context = make_context()

        await handlers.handle_text_message(update, context)

        assert replies(update) == ["[default] echo:hello"]
        context.bot.send_chat_action.assert_awaited_once_with(chat_id=CHAT, action="typing")

    @pytest.mark.asyncio
    async def test_message_layout_reaches_backend(self, wired, backend):
        text = "  fix this:\n    if x:\n        y()"

        await handlers.handle_text_message(make_update(text), make_context())

        assert backend.invocations[-1][1] == text

    @pytest.mark.asyncio
    async def test_unauthorized_user(self, wired, backend):
        update = make_update("hello", user_id=2, username="mallory")

        await handlers.handle_text_message(update, make_context())

        assert replies(update) == ["[default] ⚠️ You are not allowed to use this bot."]
        assert backend.invocations == []

    @pytest.mark.asyncio
    async def test_new_then_tagged_message(self, wired):
        new_update = make_update("/new")
        await handlers.handle_new_command(new_update, make_context())
        assert replies(new_update)[0].startswith("[s1] ✅")

        update = make_update("@s1 status report")
        await handlers.handle_text_message(update, make_context())
        assert replies(update) == ["[s1] echo:status report"]

    @pytest.mark.asyncio
    async def test_reset_command_with_tag_argument(self, wired):
        await handlers.handle_new_command(make_update("/new"), make_context())

        update = make_update("/reset @s1")
        await handlers.handle_reset_command(update, make_context(args=["@s1"]))

        assert replies(update)[0].startswith("[s1] ✅ Session reset.")

    @pytest.mark.asyncio
    async def test_status_command(self, wired):
        await handlers.handle_text_message(make_update("hello"), make_context())

        update = make_update("/status")
        await handlers.handle_status_command(update, make_context())

        assert "@default" in replies(update)[0]
