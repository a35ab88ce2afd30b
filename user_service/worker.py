"""Event consumer process.

RUN:  python -m user_service.worker

Drains the ``user.created`` route of the event channel and dispatches
each message to the handlers registered for that routing key.  In a
deployment this is the same image as the API with a different command:

  api:    uvicorn user_service.main:app --host 0.0.0.0 --port 8000
  worker: python -m user_service.worker

A handler that raises is logged and skipped; the message is not
re-queued (at-most-once on the consumer side, see event_channel).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from user_service.core.config import SETTINGS
from user_service.core.logging import setup_logging
from user_service.core.metrics import EVENT_QUEUE_DEPTH
from user_service.services.event_channel import EventSource, event_channel

EventHandler = Callable[[dict], Coroutine[Any, Any, None]]

logger = logging.getLogger("user_service.worker")


# ---------------------------------------------------------------------------
# Handler registry
# ---------------------------------------------------------------------------

HANDLERS: dict[str, list[EventHandler]] = {}


def register_handler(routing_key: str):
    """Decorator: register a coroutine as a handler for a routing key."""

    def decorator(func: EventHandler) -> EventHandler:
        HANDLERS.setdefault(routing_key, []).append(func)
        return func

    return decorator


@register_handler(SETTINGS.user_created_routing_key)
async def log_user_created(payload: dict) -> None:
    """Audit trail: one line per registration seen on the channel."""
    logger.info(
        "UserCreated user_id=%s email=%s full_name=%s occurred_at=%s",
        payload.get("userId"),
        payload.get("email"),
        payload.get("fullName"),
        payload.get("occurredAt"),
        extra={"user_id": payload.get("userId")},
    )


# ---------------------------------------------------------------------------
# Main loop
# ---------------------------------------------------------------------------


async def process_next(source: EventSource, timeout: int = 1) -> bool:
    """Receive and dispatch one message.  Returns False when none arrived."""
    payload = await source.receive(timeout=timeout)
    if payload is None:
        return False

    EVENT_QUEUE_DEPTH.labels(routing_key=source.routing_key).set(
        await source.backlog()
    )
    for handler in HANDLERS.get(source.routing_key, []):
        try:
            await handler(payload)
        except Exception:
            logger.exception(
                "Handler %s failed for user_id=%s",
                handler.__name__,
                payload.get("userId"),
            )
    return True


async def run_worker(source: EventSource = event_channel) -> None:
    logger.info(
        "Worker started, consuming %s on %s",
        source.routing_key,
        SETTINGS.event_exchange,
    )
    while True:
        await process_next(source)


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(run_worker())
