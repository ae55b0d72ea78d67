"""
In-memory registry of live bowing sessions.
"""

import time
import logging
from typing import Callable, Dict, List, Optional

from exceptions import ResourceExhausted, SessionNotFound
from .pipeline import BowingSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Holds BowingSession objects by id; nothing is persisted"""

    def __init__(
        self,
        max_sessions: int = 32,
        diagnostic_duration: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.max_sessions = max_sessions
        self.diagnostic_duration = diagnostic_duration
        self.clock = clock
        self._sessions: Dict[str, BowingSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, session_id: Optional[str] = None) -> BowingSession:
        """
        Create and register a new session.

        Raises:
            ResourceExhausted: If the registry is full
        """
        if len(self._sessions) >= self.max_sessions:
            raise ResourceExhausted(
                "sessions",
                current=str(len(self._sessions)),
                limit=str(self.max_sessions)
            )

        session = BowingSession(
            session_id=session_id,
            clock=self.clock,
            diagnostic_duration=self.diagnostic_duration
        )
        self._sessions[session.session_id] = session
        logger.info(f"Created session {session.session_id} ({len(self._sessions)}/{self.max_sessions})")
        return session

    def get(self, session_id: str) -> BowingSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def delete(self, session_id: str) -> None:
        session = self.get(session_id)
        if session.running:
            session.stop()
        del self._sessions[session_id]
        logger.info(f"Deleted session: {session_id}")

    def list_sessions(self) -> List[Dict]:
        return [session.summary() for session in self._sessions.values()]

    def clear(self) -> None:
        for session_id in list(self._sessions):
            self.delete(session_id)
