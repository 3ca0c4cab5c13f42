from enum import Enum
from typing import Optional, Protocol

from pydantic import BaseModel, Field


class SessionState(str, Enum):
    RUNNING = "running"
    IDLE = "idle"


class SessionStatus(BaseModel):
    state: SessionState = SessionState.IDLE
    log_size: Optional[int] = None  # Approximate, in characters


class SkillInfo(BaseModel):
    name: str
    description: str = ""
    version: str = ""
    tags: list[str] = Field(default_factory=list)


class ServerInfo(BaseModel):
    name: str
    connected: bool = False
    tool_count: int = 0
    last_error: Optional[str] = None


class SessionBackend(Protocol):
    """External conversational-session subsystem."""

    async def create(self) -> str: ...

    async def invoke(self, session_id: str, text: str) -> str: ...

    async def status(self, session_id: str) -> SessionStatus: ...

    async def reset(self, session_id: str) -> None: ...


class CapabilityRegistry(Protocol):
    async def list_skills(self) -> list[SkillInfo]: ...


class IntegrationRegistry(Protocol):
    async def list_servers(self) -> list[ServerInfo]: ...
