"""
Administrative commands on the session directory.

Transport-independent: each handler takes a chat id (and an optional argument)
and returns the text to send back. Telegram wiring lives in telegram_bot/handlers.py.
"""

from datetime import datetime, timezone
from typing import Optional

from sessionbot.backends.base import CapabilityRegistry, IntegrationRegistry, SessionBackend
from sessionbot.errors import ExternalSubsystemUnavailable, RouterError, render_error
from sessionbot.logging_config import bot_logger as logger
from .directory import SessionDirectory
from .router import Router, format_reply
from .tags import TAG_MARKER, normalize_tag


def format_size(chars: Optional[int]) -> str:
    if chars is None:
        return "?"
    if chars < 1000:
        return f"{chars} chars"
    if chars < 1_000_000:
        return f"{chars / 1000:.1f}k chars"
    return f"{chars / 1_000_000:.1f}M chars"


def format_age(moment: datetime, now: Optional[datetime] = None) -> str:
    seconds = int(((now or datetime.now(timezone.utc)) - moment).total_seconds())
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"


def _truncate(text: str, limit: int) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[:limit - 3] + "..."


class SessionCommands:
    def __init__(
        self,
        directory: SessionDirectory,
        router: Router,
        backend: SessionBackend,
        skills: CapabilityRegistry,
        integrations: IntegrationRegistry,
    ):
        self.directory = directory
        self.router = router
        self.backend = backend
        self.skills = skills
        self.integrations = integrations

    @property
    def default_tag(self) -> str:
        return self.directory.default_tag

    def _parse_tag_argument(self, argument: Optional[str]) -> Optional[str]:
        """'@s1', 's1' or '' -> 's1' / None. Raises InvalidTag."""
        argument = (argument or "").strip()
        if not argument:
            return None
        return normalize_tag(argument.removeprefix(TAG_MARKER))

    async def create_agent(self, chat_id: int) -> str:
        """Create a new session under the next generated tag."""
        try:
            record = await self.directory.create(chat_id)
        except RouterError as e:
            return render_error(e, self.default_tag)

        return format_reply(
            record.tag,
            f"✅ New session created.\n"
            f"Address it with {TAG_MARKER}{record.tag} <message>."
        )

    async def status(self, chat_id: int) -> str:
        """List sessions with backend state, log size and last activity."""
        records = await self.directory.list(chat_id)
        if not records:
            return format_reply(self.default_tag, "No sessions yet. Send a message to start one.")

        now = datetime.now(timezone.utc)
        lines = [f"📋 Sessions ({len(records)}):"]
        for record in records:
            try:
                status = await self.backend.status(record.session_id)
                state = status.state.value
                size = format_size(status.log_size)
            except Exception as e:
                logger.warning(f"Status unavailable for session_id={record.session_id}: {e}")
                state, size = "unavailable", "?"

            line = f"• {TAG_MARKER}{record.tag} — {state}, log {size}, active {format_age(record.last_active, now)}"
            pending = self.router.in_flight(chat_id, record.tag)
            if pending:
                line += f", {pending} pending"
            lines.append(line)

        return "\n".join(lines)

    async def list_skills(self, chat_id: int) -> str:
        try:
            skills = await self.skills.list_skills()
        except RouterError as e:
            return render_error(e, self.default_tag)
        except Exception as e:
            logger.error(f"Capability registry failed: {e}", exc_info=True)
            return render_error(ExternalSubsystemUnavailable("Skills are unavailable right now."), self.default_tag)

        if not skills:
            return "🧰 No skills installed."

        lines = [f"🧰 Skills ({len(skills)}):"]
        for skill in sorted(skills, key=lambda s: s.name.lower()):
            version = f" v{skill.version}" if skill.version else ""
            line = f"• {skill.name}{version}"
            if skill.description:
                line += f" — {_truncate(skill.description, 120)}"
            if skill.tags:
                line += f" [{', '.join(skill.tags)}]"
            lines.append(line)
        return "\n".join(lines)

    async def list_servers(self, chat_id: int) -> str:
        try:
            servers = await self.integrations.list_servers()
        except RouterError as e:
            return render_error(e, self.default_tag)
        except Exception as e:
            logger.error(f"Integration registry failed: {e}", exc_info=True)
            return render_error(ExternalSubsystemUnavailable("Integrations are unavailable right now."), self.default_tag)

        if not servers:
            return "🔌 No integrations configured."

        lines = [f"🔌 Integrations ({len(servers)}):"]
        for server in servers:
            icon = "🟢" if server.connected else "🔴"
            line = f"{icon} {server.name} — {server.tool_count} tools"
            if server.last_error:
                line += f"\n    last error: {_truncate(server.last_error, 200)}"
            lines.append(line)
        return "\n".join(lines)

    async def reset(self, chat_id: int, argument: Optional[str] = None) -> str:
        """
        Reset one session (the default one unless a tag is given).

        In-flight requests for the tag are cancelled and the record is
        forgotten; the backend reset is best effort.
        """
        tag = self.default_tag
        try:
            tag = self._parse_tag_argument(argument) or self.default_tag
            self.router.cancel(chat_id, tag)
            record = await self.directory.reset(chat_id, tag)
        except RouterError as e:
            if e.tag is None:
                e.tag = tag
            return render_error(e, self.default_tag)

        try:
            await self.backend.reset(record.session_id)
        except Exception as e:
            logger.warning(f"Backend reset failed for session_id={record.session_id} (ignored): {e}")

        if tag == self.default_tag:
            return format_reply(tag, "✅ Session reset. Your next message starts a fresh conversation.")
        return format_reply(tag, "✅ Session reset. Use /new to create another session.")

    async def cancel(self, chat_id: int, argument: Optional[str] = None) -> str:
        """Cancel pending requests for one tag, or for all tags when none is given."""
        try:
            tag = self._parse_tag_argument(argument)
        except RouterError as e:
            return render_error(e, self.default_tag)

        cancelled = self.router.cancel(chat_id, tag)
        prefix_tag = tag or self.default_tag
        if not cancelled:
            return format_reply(prefix_tag, "Nothing to cancel.")
        return format_reply(prefix_tag, f"⏹ Cancelled {cancelled} pending request(s).")
