"""Outbound domain-event channel.

PRODUCER / CONSUMER OVER REDIS LISTS
-------------------------------------
  Producer (API):    LPUSH the event JSON onto the route's list
  Consumer (worker): BRPOP from the same list, process, loop

LPUSH adds at the head and BRPOP removes from the tail, so events are
consumed in the order they were published (FIFO).

A route is the pair (exchange, routing key).  Its list is named
``events:{exchange}:{routing_key}``; consumers that care about
``user.created`` on ``user.exchange`` drain exactly that list, which is
the same contract a durable queue bound with a fixed routing key gives.

DELIVERY GUARANTEE
-------------------
Publishing happens after the user row is committed and is attempted
once.  If it fails, PublishFailure reaches the caller and the event is
not re-sent automatically: at most one event per created user.  On the
consumer side BRPOP removes the message before processing, so a worker
crash mid-handler loses that message as well.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Protocol, runtime_checkable

from redis.exceptions import RedisError

from user_service.core.config import SETTINGS
from user_service.core.errors import PublishFailure
from user_service.core.metrics import EVENTS_PUBLISHED
from user_service.db.redis import redis_pool
from user_service.models.events import UserCreatedEvent

logger = logging.getLogger(__name__)


@runtime_checkable
class EventChannel(Protocol):
    async def publish(self, event: UserCreatedEvent) -> None: ...


@runtime_checkable
class EventSource(Protocol):
    routing_key: str

    async def receive(self, timeout: int = 0) -> dict | None: ...
    async def backlog(self) -> int: ...


def route_key(exchange: str, routing_key: str) -> str:
    return f"events:{exchange}:{routing_key}"


def _log_published(event: UserCreatedEvent, key: str) -> None:
    logger.info(
        "Published %s to %s user_id=%s",
        type(event).__name__,
        key,
        event.user_id,
        extra={"user_id": str(event.user_id), "routing_key": key.rsplit(":", 1)[-1]},
    )


class InMemoryEventChannel:
    """In-memory channel for tests and local runs, no Redis needed.

    Set ``available = False`` to make publish fail the way an
    unreachable broker would.
    """

    def __init__(self, exchange: str, routing_key: str) -> None:
        self.exchange = exchange
        self.routing_key = routing_key
        self.available = True
        self._queue: list[str] = []

    @property
    def published(self) -> list[dict]:
        """Payloads still waiting in the queue, oldest first."""
        return [json.loads(message) for message in self._queue]

    async def publish(self, event: UserCreatedEvent) -> None:
        if not self.available:
            EVENTS_PUBLISHED.labels(routing_key=self.routing_key, result="failed").inc()
            raise PublishFailure(
                f"event channel unavailable for {route_key(self.exchange, self.routing_key)}"
            )
        try:
            message = event.to_json()
        except (TypeError, ValueError) as exc:
            EVENTS_PUBLISHED.labels(routing_key=self.routing_key, result="failed").inc()
            raise PublishFailure(f"failed to serialize {type(event).__name__}") from exc

        self._queue.append(message)
        EVENTS_PUBLISHED.labels(routing_key=self.routing_key, result="ok").inc()
        _log_published(event, route_key(self.exchange, self.routing_key))

    async def receive(self, timeout: int = 0) -> dict | None:
        if not self._queue and timeout:
            # Stand-in for BRPOP's blocking wait so the worker loop doesn't spin.
            await asyncio.sleep(timeout)
        if self._queue:
            return json.loads(self._queue.pop(0))  # FIFO: remove from front
        return None

    async def backlog(self) -> int:
        return len(self._queue)


class RedisEventChannel:
    """Redis-backed channel using LPUSH/BRPOP on one list per route."""

    def __init__(self, redis_client, exchange: str, routing_key: str) -> None:
        self._redis = redis_client
        self.exchange = exchange
        self.routing_key = routing_key
        self._key = route_key(exchange, routing_key)

    async def publish(self, event: UserCreatedEvent) -> None:
        try:
            message = event.to_json()
            await self._redis.lpush(self._key, message)
        except (RedisError, TypeError, ValueError) as exc:
            EVENTS_PUBLISHED.labels(routing_key=self.routing_key, result="failed").inc()
            raise PublishFailure(f"failed to publish to {self._key}") from exc

        EVENTS_PUBLISHED.labels(routing_key=self.routing_key, result="ok").inc()
        _log_published(event, self._key)

    async def receive(self, timeout: int = 5) -> dict | None:
        # BRPOP blocks up to `timeout` seconds; None means nothing arrived.
        result = await self._redis.brpop(self._key, timeout=timeout)
        if result is None:
            return None
        _, message = result
        return json.loads(message)

    async def backlog(self) -> int:
        return await self._redis.llen(self._key)


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if redis_pool is not None:
    event_channel: InMemoryEventChannel | RedisEventChannel = RedisEventChannel(
        redis_pool, SETTINGS.event_exchange, SETTINGS.user_created_routing_key
    )
else:
    event_channel = InMemoryEventChannel(
        SETTINGS.event_exchange, SETTINGS.user_created_routing_key
    )
