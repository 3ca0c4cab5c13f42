"""
Main Telegram bot handler.

Uses python-telegram-bot library. Two modes:
- webhook: FastAPI receives updates and calls handle_telegram_update()
- polling: `python -m sessionbot.telegram_bot.bot` for local runs

Updates are processed concurrently so a slow session reply in one chat never
blocks other chats (or /status in the same chat).
"""

from telegram import BotCommand, Update
from telegram.ext import Application, CommandHandler, MessageHandler, filters

from sessionbot.config import get_settings
from sessionbot.logging_config import bot_logger as logger, setup_logging
from .context import close_services, get_services
from .handlers import (
    handle_start_command,
    handle_help_command,
    handle_new_command,
    handle_status_command,
    handle_skills_command,
    handle_servers_command,
    handle_reset_command,
    handle_cancel_command,
    handle_text_message,
    handle_error,
)

BOT_COMMANDS = [
    BotCommand("new", "Create a new session"),
    BotCommand("status", "List sessions of this chat"),
    BotCommand("skills", "List available skills"),
    BotCommand("servers", "List connected integrations"),
    BotCommand("reset", "Reset a session: /reset [@tag]"),
    BotCommand("cancel", "Cancel pending replies: /cancel [@tag]"),
    BotCommand("help", "How to address sessions"),
]


# Global application instance (initialized once)
_application: Application | None = None


def register_handlers(application: Application) -> None:
    application.add_handler(CommandHandler("start", handle_start_command))
    application.add_handler(CommandHandler("help", handle_help_command))
    application.add_handler(CommandHandler("new", handle_new_command))
    application.add_handler(CommandHandler("status", handle_status_command))
    application.add_handler(CommandHandler("skills", handle_skills_command))
    application.add_handler(CommandHandler(["servers", "mcp"], handle_servers_command))
    application.add_handler(CommandHandler("reset", handle_reset_command))
    application.add_handler(CommandHandler("cancel", handle_cancel_command))

    # Text messages
    application.add_handler(
        MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text_message)
    )

    # Error handler
    application.add_error_handler(handle_error)


def get_bot_application() -> Application:
    """Get or create telegram bot application."""
    global _application

    if _application is None:
        settings = get_settings()
        if not settings.telegram_bot_token:
            raise RuntimeError("TELEGRAM_BOT_TOKEN is not set")

        _application = (
            Application.builder()
            .token(settings.telegram_bot_token)
            .concurrent_updates(True)
            .post_init(_post_init)
            .post_shutdown(_post_shutdown)
            .build()
        )
        register_handlers(_application)

        logger.info("Telegram bot application initialized")

    return _application


async def _post_init(application: Application) -> None:
    # Build backends eagerly so missing credentials fail at startup
    get_services()
    if get_settings().allowed_users:
        logger.info(f"Bot restricted to {len(get_settings().allowed_users)} allowed user(s)")
    else:
        logger.warning("TELEGRAM_BOT_ALLOWED_USERS is empty - the bot answers everyone")
    await application.bot.set_my_commands(BOT_COMMANDS)


async def _post_shutdown(application: Application) -> None:
    await close_services()


async def handle_telegram_update(update_data: dict) -> None:
    """
    Process incoming webhook update from Telegram.

    This is called by FastAPI webhook endpoint.
    """
    try:
        app = get_bot_application()

        # Convert dict to Update object
        update = Update.de_json(update_data, app.bot)

        if update:
            await app.process_update(update)
        else:
            logger.warning("Received invalid update data")

    except Exception as e:
        logger.error(f"Failed to process update: {e}", exc_info=True)


async def initialize_bot() -> None:
    """
    Initialize bot application (call on startup).

    Application.initialize() does not run post_init hooks, so run it here.
    """
    app = get_bot_application()
    await app.initialize()
    await _post_init(app)
    logger.info("Bot initialized successfully")


async def shutdown_bot() -> None:
    """
    Shutdown bot application (call on shutdown).
    """
    global _application
    if _application:
        await _application.shutdown()
        await close_services()
        _application = None
        logger.info("Bot shut down")


def main() -> None:
    """Run the bot with long polling (no webhook, no FastAPI)."""
    settings = get_settings()
    setup_logging(settings.log_level)
    if not settings.bot_enabled:
        logger.error("Telegram bot is disabled (no token or telegram_bot_enabled=false)")
        return
    get_bot_application().run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()
