"""
Shared fixtures: an in-memory session backend and wired routing services.
"""

import asyncio
from typing import Optional

import pytest

from sessionbot.backends import Backends
from sessionbot.backends.base import ServerInfo, SessionState, SessionStatus, SkillInfo
from sessionbot.telegram_bot.context import create_services


class FakeSessionBackend:
    """Echo backend. Set `gate` to make invoke() wait, `create_gate` to make create() wait."""

    def __init__(self):
        self.created: list[str] = []
        self.invocations: list[tuple[str, str]] = []
        self.reset_ids: list[str] = []
        self.gate: Optional[asyncio.Event] = None
        self.create_gate: Optional[asyncio.Event] = None
        self.create_error: Optional[Exception] = None
        self.invoke_error: Optional[Exception] = None
        self.status_error: Optional[Exception] = None
        self.reset_error: Optional[Exception] = None
        self.running: set[str] = set()
        self._counter = 0

    async def create(self) -> str:
        # Yield to the event loop so unsynchronized callers would interleave here
        await asyncio.sleep(0)
        if self.create_gate is not None:
            await self.create_gate.wait()
        if self.create_error is not None:
            raise self.create_error
        self._counter += 1
        session_id = f"sess-{self._counter}"
        self.created.append(session_id)
        return session_id

    async def invoke(self, session_id: str, text: str) -> str:
        self.invocations.append((session_id, text))
        self.running.add(session_id)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.invoke_error is not None:
                raise self.invoke_error
            return f"echo:{text}"
        finally:
            self.running.discard(session_id)

    async def status(self, session_id: str) -> SessionStatus:
        if self.status_error is not None:
            raise self.status_error
        state = SessionState.RUNNING if session_id in self.running else SessionState.IDLE
        size = sum(len(text) for sid, text in self.invocations if sid == session_id)
        return SessionStatus(state=state, log_size=size)

    async def reset(self, session_id: str) -> None:
        if self.reset_error is not None:
            raise self.reset_error
        self.reset_ids.append(session_id)


class FakeSkillRegistry:
    def __init__(self, skills=None, error: Optional[Exception] = None):
        self.skills = skills or []
        self.error = error

    async def list_skills(self) -> list[SkillInfo]:
        if self.error is not None:
            raise self.error
        return self.skills


class FakeIntegrationRegistry:
    def __init__(self, servers=None, error: Optional[Exception] = None):
        self.servers = servers or []
        self.error = error

    async def list_servers(self) -> list[ServerInfo]:
        if self.error is not None:
            raise self.error
        return self.servers


async def wait_until(condition, attempts: int = 200) -> None:
    """Let the event loop run until condition() holds."""
    for _ in range(attempts):
        if condition():
            return
        await asyncio.sleep(0.005)
    raise AssertionError("condition not reached")


@pytest.fixture
def backend():
    return FakeSessionBackend()


@pytest.fixture
def skills():
    return FakeSkillRegistry()


@pytest.fixture
def integrations():
    return FakeIntegrationRegistry()


@pytest.fixture
def services(backend, skills, integrations):
    return create_services(Backends(sessions=backend, skills=skills, integrations=integrations))


@pytest.fixture
def directory(services):
    return services.directory


@pytest.fixture
def router(services):
    return services.router


@pytest.fixture
def commands(services):
    return services.commands
