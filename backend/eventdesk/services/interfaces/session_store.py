"""
Event kit session store interface.
Allows swapping where short-lived survey/materials state is kept.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Optional


@dataclass
class EventKitSession:
    """State carried between the steps of one participant's event kit visit."""
    token: str
    participant_id: int
    event_id: Optional[int] = None
    survey_completed: bool = False
    expires_at: float = field(default=0.0)

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (now if now is not None else time.time()) >= self.expires_at

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "EventKitSession":
        return cls(
            token=data["token"],
            participant_id=int(data["participant_id"]),
            event_id=int(data["event_id"]) if data.get("event_id") is not None else None,
            survey_completed=bool(data.get("survey_completed", False)),
            expires_at=float(data.get("expires_at", 0.0)),
        )


class SessionStore(ABC):
    """
    Interface for event kit session storage.

    Implementations:
    - MemorySessionStore: per-process dict with expiry (single worker, tests)
    - RedisSessionStore: shared across workers, expiry via key TTL
    """

    @abstractmethod
    async def load(self, token: str) -> Optional[EventKitSession]:
        """Return the live session for a token, or None if unknown or expired."""
        pass

    @abstractmethod
    async def save(self, session: EventKitSession, ttl_seconds: int):
        """Persist the session and push its expiry ttl_seconds into the future."""
        pass

    @abstractmethod
    async def delete(self, token: str):
        pass
