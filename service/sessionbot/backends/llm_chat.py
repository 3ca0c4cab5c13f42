"""
In-process chat sessions backed by an LLM provider.

Each session is a message history kept in memory. Calls on the same session
are serialized by a per-session lock so the history never interleaves; the
session reports "running" while that lock is held.

Providers:
- OpenAIChatBackend: OpenAI, or any OpenAI-compatible API (OpenRouter) via base_url
- AnthropicChatBackend: Claude messages API
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

import anthropic
import openai

from sessionbot.errors import ExternalSubsystemUnavailable
from sessionbot.logging_config import bot_logger as logger
from .base import SessionState, SessionStatus


@dataclass
class ChatSession:
    session_id: str
    history: list[dict] = field(default_factory=list)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def log_size(self) -> int:
        return sum(len(message["content"]) for message in self.history)


class LLMChatBackend(ABC):
    """Session bookkeeping shared by all providers. Subclasses implement _complete()."""

    provider = "llm"

    def __init__(self, model: str, system_prompt: str = "", max_history_messages: int = 40):
        self.model = model
        self.system_prompt = system_prompt
        # Keep an even number so the trimmed history still starts with a user turn
        self.max_history_messages = max(2, max_history_messages - max_history_messages % 2)
        self._sessions: dict[str, ChatSession] = {}

    def _get(self, session_id: str) -> ChatSession:
        session = self._sessions.get(session_id)
        if session is None:
            # Directory and backend disagree, e.g. the backend was reset underneath us
            logger.warning(f"{self.provider}: unknown session_id={session_id}")
            raise ExternalSubsystemUnavailable("This session no longer exists on the backend. Use /reset.")
        return session

    async def create(self) -> str:
        session_id = uuid.uuid4().hex
        self._sessions[session_id] = ChatSession(session_id=session_id)
        return session_id

    async def invoke(self, session_id: str, text: str) -> str:
        session = self._get(session_id)
        async with session.lock:
            messages = session.history + [{"role": "user", "content": text}]
            reply = await self._complete(messages)

            # History only grows on success, so a failed call can simply be resent
            session.history = messages + [{"role": "assistant", "content": reply}]
            if len(session.history) > self.max_history_messages:
                session.history = session.history[-self.max_history_messages:]
            return reply

    async def status(self, session_id: str) -> SessionStatus:
        session = self._get(session_id)
        state = SessionState.RUNNING if session.lock.locked() else SessionState.IDLE
        return SessionStatus(state=state, log_size=session.log_size)

    async def reset(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    @abstractmethod
    async def _complete(self, messages: list[dict]) -> str:
        """Send the full history to the provider and return the reply text."""


class OpenAIChatBackend(LLMChatBackend):
    provider = "openai"

    def __init__(
        self,
        api_key: str,
        model: str,
        system_prompt: str = "",
        max_history_messages: int = 40,
        base_url: Optional[str] = None,
        client: Optional[openai.AsyncOpenAI] = None,
    ):
        super().__init__(model, system_prompt, max_history_messages)
        self.client = client or openai.AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def _complete(self, messages: list[dict]) -> str:
        if self.system_prompt:
            messages = [{"role": "system", "content": self.system_prompt}] + messages
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
            )
        except openai.APIError as e:
            logger.error(f"OpenAI API error: {e}")
            raise ExternalSubsystemUnavailable("The language model is unavailable right now.") from e

        return (response.choices[0].message.content or "").strip()


class AnthropicChatBackend(LLMChatBackend):
    provider = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str,
        system_prompt: str = "",
        max_history_messages: int = 40,
        max_tokens: int = 4096,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        super().__init__(model, system_prompt, max_history_messages)
        self.max_tokens = max_tokens
        self.client = client or anthropic.AsyncAnthropic(api_key=api_key)

    async def _complete(self, messages: list[dict]) -> str:
        kwargs = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": messages,
        }
        if self.system_prompt:
            kwargs["system"] = self.system_prompt
        try:
            response = await self.client.messages.create(**kwargs)
        except anthropic.APIError as e:
            logger.error(f"Anthropic API error: {e}")
            raise ExternalSubsystemUnavailable("The language model is unavailable right now.") from e

        parts = [block.text for block in response.content if block.type == "text"]
        return "\n".join(parts).strip()
