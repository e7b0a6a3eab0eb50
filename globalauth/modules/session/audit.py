import json
import logging
from collections import deque
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional

from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

AUDIT_KEY = "globalauth:audit"


class AuditTrail:
    """
    Security event log.

    Events go to a capped Redis list when a client is available, otherwise
    to a bounded in-memory buffer. They never carry passwords or full tokens.
    """

    def __init__(self, redis_client=None, max_events: int = 10000):
        """
        Initialize audit trail.

        Args:
            redis_client: Optional async Redis client
            max_events: Number of most recent events kept
        """
        self.redis = redis_client
        self.max_events = max_events
        self._events: deque = deque(maxlen=max_events)

    async def record(self, event_type: str, username: str, **data: Any) -> Dict[str, Any]:
        """
        Record a security event.

        Args:
            event_type: Type of security event
            username: Account the event concerns
            **data: Extra, non-secret event data

        Returns:
            The recorded event
        """
        event = {
            "type": event_type,
            "username": username,
            "data": data,
            "timestamp": datetime.now(UTC).isoformat(),
        }
        logger.info(f"audit: {event_type} username={username}")

        if self.redis is None:
            self._events.appendleft(event)
            return event

        try:
            await self.redis.lpush(AUDIT_KEY, json.dumps(event))
            await self.redis.ltrim(AUDIT_KEY, 0, self.max_events - 1)
        except RedisError as e:
            # Best effort: the operation has already committed
            logger.warning(f"Failed to store audit event {event_type}: {e}")

        return event

    async def recent(self, count: int = 100) -> List[Dict[str, Any]]:
        """Most recent events, newest first."""
        if self.redis is None:
            return list(self._events)[:count]

        raw_events = await self.redis.lrange(AUDIT_KEY, 0, count - 1)
        return [json.loads(raw) for raw in raw_events]
