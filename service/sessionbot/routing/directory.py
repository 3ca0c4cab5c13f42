"""
Session directory - per-chat registry of tag -> session record.

Each chat owns an ordered map of records and a monotonic counter for generated
tags (s1, s2, ...). The counter only grows: resetting a session never frees
its tag number.

All operations on one chat run under that chat's asyncio.Lock. The lock is
held across session creation, so two concurrent creations can never produce
the same tag or create the default session twice. It is never held while a
session is being invoked; that happens in the router.

In memory only: every session is lost when the process restarts.
"""

import asyncio
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, List

from sessionbot.errors import UnknownSession
from sessionbot.logging_config import bot_logger as logger
from .factory import SessionFactory
from .tags import DEFAULT_TAG, TAG_MARKER


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SessionRecord:
    tag: str
    session_id: str
    created_at: datetime = field(default_factory=_utcnow)
    last_active: datetime = field(default_factory=_utcnow)


@dataclass
class _ChatSessions:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    records: Dict[str, SessionRecord] = field(default_factory=dict)
    next_sequence: int = 1


class SessionDirectory:
    def __init__(
        self,
        factory: SessionFactory,
        default_tag: str = DEFAULT_TAG,
        tag_prefix: str = "s",
    ):
        self.factory = factory
        self.default_tag = default_tag
        self.tag_prefix = tag_prefix
        self._chats: Dict[int, _ChatSessions] = {}

    def _chat(self, chat_id: int) -> _ChatSessions:
        # No await between lookup and insert, so this cannot race on the event loop
        chat = self._chats.get(chat_id)
        if chat is None:
            chat = _ChatSessions()
            self._chats[chat_id] = chat
        return chat

    async def get_or_create(self, chat_id: int, tag: str | None = None) -> SessionRecord:
        """
        Return the record for tag, creating it if missing.

        Only used for the default tag: explicit tags must be created with create().
        """
        tag = tag or self.default_tag
        chat = self._chat(chat_id)
        async with chat.lock:
            record = chat.records.get(tag)
            if record is None:
                session_id = await self.factory.create_session()
                record = SessionRecord(tag=tag, session_id=session_id)
                chat.records[tag] = record
                logger.info(f"chat_id={chat_id}: implicitly created session {TAG_MARKER}{tag}")
            record.last_active = _utcnow()
            return replace(record)

    async def get(self, chat_id: int, tag: str) -> SessionRecord:
        """Return the record for an existing tag. Raises UnknownSession otherwise."""
        chat = self._chat(chat_id)
        async with chat.lock:
            record = chat.records.get(tag)
            if record is None:
                raise UnknownSession(
                    f"No session {TAG_MARKER}{tag} in this chat. "
                    f"Use /new to create one or /status to see existing sessions.",
                    tag=tag,
                )
            record.last_active = _utcnow()
            return replace(record)

    async def create(self, chat_id: int) -> SessionRecord:
        """Create a session under the next generated tag."""
        chat = self._chat(chat_id)
        async with chat.lock:
            sequence = chat.next_sequence
            tag = f"{self.tag_prefix}{sequence}"
            while tag in chat.records:
                # Only reachable if the default tag was configured to look generated
                sequence += 1
                tag = f"{self.tag_prefix}{sequence}"

            session_id = await self.factory.create_session()

            record = SessionRecord(tag=tag, session_id=session_id)
            chat.records[tag] = record
            chat.next_sequence = sequence + 1
            logger.info(f"chat_id={chat_id}: created session {TAG_MARKER}{tag}")
            return replace(record)

    async def list(self, chat_id: int) -> List[SessionRecord]:
        """All records of the chat in creation order."""
        chat = self._chat(chat_id)
        async with chat.lock:
            return [replace(record) for record in chat.records.values()]

    async def reset(self, chat_id: int, tag: str) -> SessionRecord:
        """Forget the record for tag and return it. The tag counter is not touched."""
        chat = self._chat(chat_id)
        async with chat.lock:
            record = chat.records.pop(tag, None)
            if record is None:
                raise UnknownSession(f"No session {TAG_MARKER}{tag} to reset.", tag=tag)
            logger.info(f"chat_id={chat_id}: reset session {TAG_MARKER}{tag}")
            return record

    def next_sequence(self, chat_id: int) -> int:
        chat = self._chats.get(chat_id)
        return chat.next_sequence if chat else 1
