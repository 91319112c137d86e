"""
In-process session store - no external dependency.
"""

import time
from typing import Optional

from eventdesk.services.interfaces.session_store import EventKitSession, SessionStore


class MemorySessionStore(SessionStore):
    """
    Sessions live in a dict on this worker.

    Use when:
    - Single worker deployments
    - Tests and local development
    """

    def __init__(self):
        self._sessions: dict[str, dict] = {}

    async def load(self, token: str) -> Optional[EventKitSession]:
        data = self._sessions.get(token)
        if data is None:
            return None
        session = EventKitSession.from_dict(data)
        if session.is_expired():
            self._sessions.pop(token, None)
            return None
        return session

    async def save(self, session: EventKitSession, ttl_seconds: int):
        session.expires_at = time.time() + ttl_seconds
        self._sessions[session.token] = session.to_dict()
        self._purge_expired()

    async def delete(self, token: str):
        self._sessions.pop(token, None)

    def _purge_expired(self):
        now = time.time()
        for token in [t for t, data in self._sessions.items() if data["expires_at"] <= now]:
            del self._sessions[token]
