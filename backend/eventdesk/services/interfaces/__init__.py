"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .session_store import EventKitSession, SessionStore
from .memory_session_store import MemorySessionStore

__all__ = ['EventKitSession', 'SessionStore', 'MemorySessionStore']
