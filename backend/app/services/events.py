"""
Domain event publishing.

The notification layer is an external collaborator. The core only calls
``publish(kind, payload)`` on a publisher handed to it through dependency
injection; delivery guarantees are the collaborator's concern.
"""

import json
import logging
from typing import Any, Dict, Protocol

from fastapi import Depends

from backend.app.core.config import settings
from backend.app.core.redis_client import get_redis
from backend.app.core.reliability import CircuitBreaker, CircuitOpenError

logger = logging.getLogger("livestock.events")


class EventKind:
    """Domain event names."""
    LOAD_MATCHED = "load.matched"
    TRIP_STATUS_CHANGED = "trip.status_changed"
    TRIP_DELIVERED = "trip.delivered"
    PAYMENT_FUNDED = "payment.funded"
    DISPUTE_OPENED = "dispute.opened"
    DISPUTE_RESOLVED = "dispute.resolved"


class EventPublisher(Protocol):
    async def publish(self, kind: str, payload: Dict[str, Any]) -> None:
        ...


class RedisEventPublisher:
    """
    Publishes events as JSON on ``<prefix>:<kind>`` Redis channels.

    Events are published after commit; a failed publish is logged and does
    not undo the committed operation.
    """

    def __init__(self, redis, channel_prefix: str = None, breaker: CircuitBreaker = None):
        self.redis = redis
        self.channel_prefix = channel_prefix or settings.event_channel_prefix
        self.breaker = breaker or _publisher_breaker

    def channel_for(self, kind: str) -> str:
        return f"{self.channel_prefix}:{kind}"

    async def publish(self, kind: str, payload: Dict[str, Any]) -> None:
        message = json.dumps({"kind": kind, "payload": payload}, default=str)
        try:
            await self.breaker.call(self.redis.publish, self.channel_for(kind), message)
        except CircuitOpenError:
            logger.warning("Event channel circuit open, dropped %s", kind)
        except Exception:
            logger.exception("Failed to publish %s", kind)
        else:
            logger.info("Published %s", kind)


_publisher_breaker = CircuitBreaker(
    failure_threshold=settings.event_publisher_failure_threshold,
    reset_timeout=settings.event_publisher_reset_timeout,
)


async def get_event_publisher(redis=Depends(get_redis)) -> EventPublisher:
    """FastAPI dependency providing the request's event publisher."""
    return RedisEventPublisher(redis)
