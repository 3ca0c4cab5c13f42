"""
Telegram message and command handlers.

ARCHITECTURE: thin transport layer - NO routing logic here!
- Authorize the user (allowed-user list from settings)
- Hand the text to the router / session commands
- Send the reply back, split to Telegram's 4096-char limit

Commands:
/start, /help   - usage
/new            - create a session (@s1, @s2, ...)
/status         - list sessions of this chat
/skills         - list agent skills
/servers, /mcp  - list connected integrations
/reset [@tag]   - reset a session (default one if no tag)
/cancel [@tag]  - cancel pending requests (all tags if no tag)
"""

import re
from typing import Optional

from telegram import Update
from telegram.ext import ContextTypes

from sessionbot.errors import Unauthorized, render_error
from sessionbot.routing.tags import join_segments
from .auth import ensure_authorized
from .context import get_services
from sessionbot.logging_config import bot_logger as logger

TELEGRAM_MAX_LENGTH = 4096


def split_message(text: str, max_len: int = TELEGRAM_MAX_LENGTH) -> list[str]:
    """
    Split text into chunks that fit Telegram's message limit.

    Prefers paragraph breaks, then line breaks, then spaces; hard-cuts only
    when a single word is longer than the limit.
    """
    chunks = []
    remaining = text
    while len(remaining) > max_len:
        window = remaining[:max_len]
        split_at = -1
        for separator in ("\n\n", "\n", " "):
            split_at = window.rfind(separator)
            if split_at > 0:
                break
        if split_at <= 0:
            split_at = max_len

        chunks.append(remaining[:split_at].rstrip())
        remaining = remaining[split_at:].lstrip()

    if remaining or not chunks:
        chunks.append(remaining)
    return chunks


def strip_bot_mention(text: str, bot_username: Optional[str]) -> str:
    """
    Remove mentions of the bot itself (group chats) so they are not read as session tags.

    Only the mention and the whitespace right next to it go; the rest of the
    message (indentation, line breaks, repeated spaces) is left untouched.
    """
    if not bot_username:
        return text
    pattern = re.compile(rf"(?<!\S)@{re.escape(bot_username)}(?![\w])", re.IGNORECASE)

    # Right to left, so earlier match offsets stay valid
    for match in reversed(list(pattern.finditer(text))):
        text = join_segments(text[:match.start()], text[match.end():])
    return text


async def reply_chunks(update: Update, text: str) -> None:
    for chunk in split_message(text):
        await update.message.reply_text(chunk)


async def _authorize(update: Update) -> bool:
    user = update.effective_user
    try:
        ensure_authorized(user.id, user.username)
    except Unauthorized as e:
        await update.message.reply_text(render_error(e, get_services().router.default_tag))
        return False
    return True


async def handle_start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command."""
    if not await _authorize(update):
        return

    user = update.effective_user
    default_tag = get_services().router.default_tag
    welcome_text = f"""👋 Hi, {user.first_name}!

I connect this chat to one or more independent agent sessions.

• Just write — the message goes to the @{default_tag} session.
• /new — start another session (@s1, @s2, ...)
• "@s1 summarize the report" — talk to a specific session

Every reply starts with [tag] so you always know who answered.
Use /help for all commands."""

    await update.message.reply_text(welcome_text)


async def handle_help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command."""
    if not await _authorize(update):
        return

    default_tag = get_services().router.default_tag
    help_text = f"""📖 How to use sessions

<b>Addressing:</b>
• "hello" → @{default_tag}
• "@s1 hello" or "hello @s1" → session s1
• One tag per message

<b>Commands:</b>
/new — create a new session
/status — sessions, state and last activity
/skills — available skills
/servers — connected integrations
/reset [@tag] — reset a session (@{default_tag} by default)
/cancel [@tag] — stop waiting for a reply (all sessions by default)
/help — this help"""

    await update.message.reply_text(help_text, parse_mode="HTML")


async def handle_new_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /new command - create a session under the next tag."""
    if not await _authorize(update):
        return
    chat_id = update.effective_chat.id
    await reply_chunks(update, await get_services().commands.create_agent(chat_id))


async def handle_status_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not await _authorize(update):
        return
    chat_id = update.effective_chat.id
    await reply_chunks(update, await get_services().commands.status(chat_id))


async def handle_skills_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not await _authorize(update):
        return
    chat_id = update.effective_chat.id
    await reply_chunks(update, await get_services().commands.list_skills(chat_id))


async def handle_servers_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if not await _authorize(update):
        return
    chat_id = update.effective_chat.id
    await reply_chunks(update, await get_services().commands.list_servers(chat_id))


async def handle_reset_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /reset [@tag] - reset one session, the default one if no tag is given."""
    if not await _authorize(update):
        return
    chat_id = update.effective_chat.id
    argument = " ".join(context.args or [])
    await reply_chunks(update, await get_services().commands.reset(chat_id, argument))


async def handle_cancel_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /cancel [@tag] - stop waiting for pending replies."""
    if not await _authorize(update):
        return
    chat_id = update.effective_chat.id
    argument = " ".join(context.args or [])
    await reply_chunks(update, await get_services().commands.cancel(chat_id, argument))


async def handle_text_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle incoming text message.

    1. Authorize user
    2. Drop mentions of the bot itself
    3. Route to the addressed session (router never raises)
    4. Send the tagged reply
    """
    user = update.effective_user
    chat_id = update.effective_chat.id
    message_text = update.message.text or ""

    logger.info(f"Received message from user_id={user.id}, chat_id={chat_id}, text_len={len(message_text)}")

    if not await _authorize(update):
        return

    text = strip_bot_mention(message_text, context.bot.username)

    await context.bot.send_chat_action(chat_id=chat_id, action="typing")
    reply = await get_services().router.route(chat_id, text)
    await reply_chunks(update, reply)


async def handle_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Log errors that escaped a handler (one chat's failure never affects others)."""
    logger.error(f"Update {update} caused error: {context.error}", exc_info=context.error)
