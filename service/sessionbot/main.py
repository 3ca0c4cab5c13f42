import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, HTTPException, Request

from sessionbot.config import get_settings
from sessionbot.logging_config import bot_logger as logger, setup_logging
from sessionbot.telegram_bot.bot import handle_telegram_update, initialize_bot, shutdown_bot

VERSION = "0.1.0"

# Background update tasks (kept referenced until done)
_update_tasks: set[asyncio.Task] = set()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.log_level)

    if settings.bot_enabled:
        logger.info("[STARTUP] Initializing Telegram bot...")
        await initialize_bot()
        logger.info("[STARTUP] Bot ready")
    else:
        logger.warning("[STARTUP] Telegram bot disabled (no token or telegram_bot_enabled=false)")

    yield

    if settings.bot_enabled:
        logger.info("[SHUTDOWN] Shutting down Telegram bot...")
        await shutdown_bot()
        logger.info("[SHUTDOWN] Bot stopped")


app = FastAPI(
    title="SessionBot API",
    description="Telegram front end for multiple agent sessions",
    version=VERSION,
    lifespan=lifespan,
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    settings = get_settings()
    return {
        "status": "ok",
        "environment": settings.environment,
        "bot_enabled": settings.bot_enabled,
        "session_backend": settings.session_backend,
        "version": VERSION,
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "SessionBot API",
        "docs": "/docs"
    }


# Telegram webhook endpoint
@app.post("/telegram/webhook")
async def telegram_webhook(
    request: Request,
    x_telegram_bot_api_secret_token: str = Header(None)
):
    """
    Webhook endpoint for Telegram updates.

    Telegram sends updates here when messages arrive.
    """
    settings = get_settings()

    if not settings.bot_enabled:
        raise HTTPException(status_code=503, detail="Telegram bot is disabled")

    # Verify secret token if configured
    if settings.telegram_webhook_secret:
        if x_telegram_bot_api_secret_token != settings.telegram_webhook_secret:
            raise HTTPException(status_code=403, detail="Invalid secret token")

    update_data = await request.json()

    # Handle update in background (fire-and-forget for fast 200 OK)
    task = asyncio.create_task(handle_telegram_update(update_data))
    _update_tasks.add(task)
    task.add_done_callback(_update_tasks.discard)

    return {"ok": True}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
