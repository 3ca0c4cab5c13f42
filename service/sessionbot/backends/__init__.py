"""
Session backend selection.

settings.session_backend picks where sessions live:
- "http": an external agent API (also serves skills and integrations)
- "openai" / "openrouter" / "anthropic": in-process chat sessions
"""

from dataclasses import dataclass

from sessionbot.config import Settings
from sessionbot.logging_config import bot_logger as logger
from .base import (
    CapabilityRegistry,
    IntegrationRegistry,
    ServerInfo,
    SessionBackend,
    SessionState,
    SessionStatus,
    SkillInfo,
)
from .http_agent import HttpAgentClient
from .llm_chat import AnthropicChatBackend, OpenAIChatBackend
from .skills import FileSkillRegistry, NullIntegrationRegistry


@dataclass
class Backends:
    sessions: SessionBackend
    skills: CapabilityRegistry
    integrations: IntegrationRegistry


def _require(value: str, name: str, backend: str) -> str:
    if not value:
        raise RuntimeError(f"session_backend={backend} requires {name.upper()} to be set")
    return value


def build_backends(settings: Settings) -> Backends:
    """Create the session backend and registries for the configured backend."""
    backend = settings.session_backend
    logger.info(f"Using session backend: {backend}")

    if backend == "http":
        client = HttpAgentClient(settings.agent_api_url, api_key=settings.agent_api_key)
        return Backends(sessions=client, skills=client, integrations=client)

    if backend == "openai":
        sessions = OpenAIChatBackend(
            api_key=_require(settings.api_key_openai, "api_key_openai", backend),
            model=settings.chat_model,
            system_prompt=settings.system_prompt,
            max_history_messages=settings.max_history_messages,
        )
    elif backend == "openrouter":
        sessions = OpenAIChatBackend(
            api_key=_require(settings.api_key_openrouter, "api_key_openrouter", backend),
            model=settings.chat_model,
            system_prompt=settings.system_prompt,
            max_history_messages=settings.max_history_messages,
            base_url=settings.openrouter_base_url,
        )
    elif backend == "anthropic":
        sessions = AnthropicChatBackend(
            api_key=_require(settings.api_key_anthropic, "api_key_anthropic", backend),
            model=settings.chat_model,
            system_prompt=settings.system_prompt,
            max_history_messages=settings.max_history_messages,
        )
    else:
        raise RuntimeError(f"Unknown session backend: {backend}")

    return Backends(
        sessions=sessions,
        skills=FileSkillRegistry(settings.skills_dir),
        integrations=NullIntegrationRegistry(),
    )


__all__ = [
    "Backends",
    "build_backends",
    "CapabilityRegistry",
    "IntegrationRegistry",
    "SessionBackend",
    "SessionState",
    "SessionStatus",
    "SkillInfo",
    "ServerInfo",
    "HttpAgentClient",
    "OpenAIChatBackend",
    "AnthropicChatBackend",
    "FileSkillRegistry",
    "NullIntegrationRegistry",
]
