"""
Session factory - creates external conversational sessions.

No retries here: the user can simply resend. Whatever goes wrong in the
backend surfaces as SessionCreationFailed, and the directory only commits a
record once this returns an id.
"""

from sessionbot.backends.base import SessionBackend
from sessionbot.errors import SessionCreationFailed
from sessionbot.logging_config import bot_logger as logger


class SessionFactory:
    def __init__(self, backend: SessionBackend):
        self.backend = backend

    async def create_session(self) -> str:
        """Create a new external session and return its opaque id."""
        try:
            session_id = await self.backend.create()
        except SessionCreationFailed:
            raise
        except Exception as e:
            logger.error(f"Session backend failed to create a session: {e}", exc_info=True)
            raise SessionCreationFailed("Could not start a new session.") from e

        if not session_id:
            logger.error("Session backend returned an empty session id")
            raise SessionCreationFailed("Could not start a new session.")

        logger.info(f"Created external session session_id={session_id}")
        return session_id
