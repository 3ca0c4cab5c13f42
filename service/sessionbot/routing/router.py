"""
Router - sends each chat message to the session its @tag addresses.

Flow:
1. Parse tag + body (no tag -> default session)
2. Resolve the record: default tag is created on demand, explicit tags must exist
3. Invoke the session outside the directory lock (may take minutes)
4. Reply as "[tag] text" so the user always knows which session answered

Every failure is turned into a short tag-prefixed message here. Nothing raised
below this point reaches the chat surface as-is.
"""

import asyncio
from typing import Dict, Optional, Set, Tuple

from sessionbot.backends.base import SessionBackend
from sessionbot.errors import ExternalSubsystemUnavailable, RouterError, render_error, render_unexpected
from sessionbot.logging_config import bot_logger as logger
from .directory import SessionDirectory, SessionRecord
from .tags import TAG_MARKER, parse_tag


def format_reply(tag: str, text: str) -> str:
    """Prefix a session reply with its tag."""
    return f"[{tag}] {text}"


class InvocationCancelled(Exception):
    """The in-flight invocation was cancelled with /cancel or /reset."""


class Router:
    def __init__(
        self,
        directory: SessionDirectory,
        backend: SessionBackend,
        invoke_timeout: Optional[float] = None,
    ):
        self.directory = directory
        self.backend = backend
        self.invoke_timeout = invoke_timeout
        self._in_flight: Dict[Tuple[int, str], Set[asyncio.Task]] = {}

    @property
    def default_tag(self) -> str:
        return self.directory.default_tag

    async def route(self, chat_id: int, raw_message: str) -> str:
        """Route one message and return the formatted reply (or error) text."""
        tag = self.default_tag

        try:
            parsed = parse_tag(raw_message, self.default_tag)
            tag = parsed.tag

            if not parsed.body.strip():
                return format_reply(tag, f"✉️ Nothing to send. Write your message after {TAG_MARKER}{tag}.")

            record = await self._resolve(chat_id, tag)
            logger.info(
                f"chat_id={chat_id}: routing {len(parsed.body)} chars to "
                f"{TAG_MARKER}{tag} (session_id={record.session_id})"
            )
            reply = await self._invoke(chat_id, record, parsed.body)

        except InvocationCancelled:
            logger.info(f"chat_id={chat_id}: invocation of {TAG_MARKER}{tag} cancelled by user")
            return format_reply(tag, "⏹ Cancelled.")
        except RouterError as e:
            logger.warning(f"chat_id={chat_id}: {e.kind} for {TAG_MARKER}{e.tag or tag}: {e.message}")
            if e.tag is None:
                e.tag = tag
            return render_error(e, self.default_tag)
        except Exception as e:
            logger.error(f"chat_id={chat_id}: unexpected routing error: {e}", exc_info=True)
            return render_unexpected(tag)

        return format_reply(tag, reply)

    async def _resolve(self, chat_id: int, tag: str) -> SessionRecord:
        if tag == self.default_tag:
            return await self.directory.get_or_create(chat_id, tag)
        return await self.directory.get(chat_id, tag)

    async def _invoke(self, chat_id: int, record: SessionRecord, body: str) -> str:
        key = (chat_id, record.tag)
        task = asyncio.create_task(self.backend.invoke(record.session_id, body))
        self._in_flight.setdefault(key, set()).add(task)

        try:
            return await asyncio.wait_for(task, timeout=self.invoke_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"chat_id={chat_id}: {TAG_MARKER}{record.tag} did not answer within {self.invoke_timeout}s"
            )
            raise ExternalSubsystemUnavailable(
                "The session took too long to answer. It is still available.",
                tag=record.tag,
            )
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                # The caller itself is being cancelled (transport timeout, shutdown)
                task.cancel()
                raise
            raise InvocationCancelled()
        finally:
            tasks = self._in_flight.get(key)
            if tasks is not None:
                tasks.discard(task)
                if not tasks:
                    del self._in_flight[key]

    def cancel(self, chat_id: int, tag: Optional[str] = None) -> int:
        """
        Cancel in-flight invocations for one tag, or for every tag of the chat.

        Returns the number of invocations cancelled. Directory state is untouched.
        """
        cancelled = 0
        for (key_chat, key_tag), tasks in list(self._in_flight.items()):
            if key_chat != chat_id or (tag is not None and key_tag != tag):
                continue
            for task in list(tasks):
                if not task.done():
                    task.cancel()
                    cancelled += 1
        if cancelled:
            logger.info(f"chat_id={chat_id}: cancelled {cancelled} invocation(s) for {tag or 'all tags'}")
        return cancelled

    def in_flight(self, chat_id: int, tag: str) -> int:
        return len(self._in_flight.get((chat_id, tag), ()))
