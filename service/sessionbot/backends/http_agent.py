"""
HTTP client for an external agent API.

The agent service owns the sessions; this client only forwards calls:

    POST   /sessions                  -> {"session_id": "..."}
    POST   /sessions/{id}/messages    {"text": "..."} -> {"reply": "..."}
    GET    /sessions/{id}             -> {"state": "running"|"idle", "log_size": 1234}
    DELETE /sessions/{id}
    GET    /skills                    -> {"skills": [...]}
    GET    /integrations              -> {"servers": [...]}

Implements SessionBackend, CapabilityRegistry and IntegrationRegistry.
"""

from typing import Any, Dict, Optional

import httpx

from sessionbot.errors import ExternalSubsystemUnavailable
from sessionbot.logging_config import bot_logger as logger
from .base import ServerInfo, SessionState, SessionStatus, SkillInfo


class HttpAgentClient:
    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"X-API-KEY": api_key} if api_key else {}
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await self.client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Agent API {method} {path} failed: {e}")
            raise ExternalSubsystemUnavailable("The agent service is unavailable right now.") from e

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"Agent API {method} {path} returned invalid JSON")
            raise ExternalSubsystemUnavailable("The agent service returned an invalid response.") from e

        if not isinstance(data, dict):
            logger.warning(f"Agent API {method} {path} returned {type(data).__name__}, expected an object")
            raise ExternalSubsystemUnavailable("The agent service returned an invalid response.")
        return data

    async def create(self) -> str:
        data = await self._request("POST", "/sessions")
        return str(data.get("session_id") or "")

    async def invoke(self, session_id: str, text: str) -> str:
        # Replies can take minutes; the router enforces its own timeout
        data = await self._request(
            "POST",
            f"/sessions/{session_id}/messages",
            json={"text": text},
            timeout=None,
        )
        return str(data.get("reply", ""))

    async def status(self, session_id: str) -> SessionStatus:
        data = await self._request("GET", f"/sessions/{session_id}")
        state = SessionState.RUNNING if data.get("state") == SessionState.RUNNING.value else SessionState.IDLE
        return SessionStatus(state=state, log_size=data.get("log_size"))

    async def reset(self, session_id: str) -> None:
        await self._request("DELETE", f"/sessions/{session_id}")

    async def list_skills(self) -> list[SkillInfo]:
        data = await self._request("GET", "/skills")
        return [SkillInfo.model_validate(item) for item in data.get("skills", [])]

    async def list_servers(self) -> list[ServerInfo]:
        data = await self._request("GET", "/integrations")
        return [ServerInfo.model_validate(item) for item in data.get("servers", [])]

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()
