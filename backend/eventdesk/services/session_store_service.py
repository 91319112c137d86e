"""
Redis-backed event kit session store.
Implements SessionStore using the shared Redis connection.

On Redis failure the visit degrades to "no session": loads return None and
saves are dropped, so the participant is sent back to verification instead of
the request erroring out.
"""

import json
import time
from typing import Optional

from eventdesk.core.logging import get_logger
from eventdesk.services.cache_service import get_redis
from eventdesk.services.interfaces.session_store import EventKitSession, SessionStore

logger = get_logger(__name__)

KEY_PREFIX = "event_kit:session:"


class RedisSessionStore(SessionStore):
    """
    Sessions stored as JSON under "event_kit:session:{token}" with a TTL.

    Use when:
    - Several API workers sit behind a load balancer
    """

    def _key(self, token: str) -> str:
        return f"{KEY_PREFIX}{token}"

    async def load(self, token: str) -> Optional[EventKitSession]:
        client = await get_redis()
        if not client:
            return None
        try:
            data = await client.get(self._key(token))
        except Exception as e:
            logger.error("event_kit_session_load_error", error=str(e))
            return None
        if not data:
            return None
        return EventKitSession.from_dict(json.loads(data))

    async def save(self, session: EventKitSession, ttl_seconds: int):
        session.expires_at = time.time() + ttl_seconds
        client = await get_redis()
        if not client:
            logger.warning("event_kit_session_not_saved", reason="redis_unavailable")
            return
        try:
            await client.setex(self._key(session.token), ttl_seconds, json.dumps(session.to_dict()))
        except Exception as e:
            logger.error("event_kit_session_save_error", error=str(e))

    async def delete(self, token: str):
        client = await get_redis()
        if not client:
            return
        try:
            await client.delete(self._key(token))
        except Exception as e:
            logger.error("event_kit_session_delete_error", error=str(e))
