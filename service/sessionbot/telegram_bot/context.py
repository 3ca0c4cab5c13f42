"""
Process-wide routing services for the Telegram bot.

Built once from settings on first use. Sessions live in memory, so a restart
starts every chat from scratch.
"""

from dataclasses import dataclass
from typing import Optional

from sessionbot.backends import Backends, build_backends
from sessionbot.config import get_settings
from sessionbot.routing import Router, SessionCommands, SessionDirectory, SessionFactory


@dataclass
class BotServices:
    backends: Backends
    directory: SessionDirectory
    router: Router
    commands: SessionCommands


_services: Optional[BotServices] = None


def create_services(backends: Backends, default_tag: str = "default", tag_prefix: str = "s",
                    invoke_timeout: Optional[float] = None) -> BotServices:
    """Wire directory, router and commands around a set of backends."""
    directory = SessionDirectory(
        SessionFactory(backends.sessions),
        default_tag=default_tag,
        tag_prefix=tag_prefix,
    )
    router = Router(directory, backends.sessions, invoke_timeout=invoke_timeout)
    commands = SessionCommands(
        directory,
        router,
        backends.sessions,
        skills=backends.skills,
        integrations=backends.integrations,
    )
    return BotServices(backends=backends, directory=directory, router=router, commands=commands)


def get_services() -> BotServices:
    """Get or create the routing services singleton."""
    global _services
    if _services is None:
        settings = get_settings()
        _services = create_services(
            build_backends(settings),
            default_tag=settings.default_tag,
            tag_prefix=settings.generated_tag_prefix,
            invoke_timeout=settings.invoke_timeout_seconds or None,
        )
    return _services


def set_services(services: Optional[BotServices]) -> None:
    """Replace the singleton (used by tests and custom deployments)."""
    global _services
    _services = services


async def close_services() -> None:
    """Release backend resources (HTTP connections)."""
    global _services
    if _services is None:
        return
    close = getattr(_services.backends.sessions, "close", None)
    if close is not None:
        await close()
    _services = None
