"""
Session store factory.
Configures where event kit sessions are kept.
"""

from typing import Optional

from eventdesk.core.config import get_settings
from eventdesk.services.interfaces.memory_session_store import MemorySessionStore
from eventdesk.services.interfaces.session_store import SessionStore
from eventdesk.services.session_store_service import RedisSessionStore


def get_session_store_strategy() -> SessionStore:
    """
    Get configured session store.

    - memory: single worker, tests (default)
    - redis: shared between workers

    Selected via the EVENT_KIT_STORE env var.
    """
    if get_settings().EVENT_KIT_STORE == "redis":
        return RedisSessionStore()
    return MemorySessionStore()


# Singleton instance
_store: Optional[SessionStore] = None


def get_session_store() -> SessionStore:
    """Get session store singleton."""
    global _store
    if _store is None:
        _store = get_session_store_strategy()
    return _store
