"""
Delivery of queued events (e-mail to the people an event concerns).

services/events.py pushes {"type": ..., **payload} onto events:p2p;
consumer.py pops them and hands each one to process_event().
"""

import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

EventHandler = Callable[[dict], Awaitable[None]]

# event type → handler
EVENT_HANDLERS: dict[str, EventHandler] = {}


def register_event(*event_types: str):
    """Register the decorated coroutine for one or more event types."""
    def decorator(func: EventHandler) -> EventHandler:
        for event_type in event_types:
            EVENT_HANDLERS[event_type] = func
        return func
    return decorator


async def process_event(data: dict) -> bool:
    """Run the handler for data["type"]. False when nothing handled it."""
    event_type = data.get("type")
    handler = EVENT_HANDLERS.get(event_type) if event_type else None

    if handler is None:
        logger.warning(f"Skipping event without handler: type={event_type!r}")
        return False

    logger.debug(f"Delivering {event_type} (attempt {data.get('_attempt', 1)})")
    await handler(data)
    return True


from . import handlers  # noqa: E402, F401
