"""
backend/vetperto/services/events.py

Event emitter: pushes events to a Redis queue for the delivery consumer.

- events:p2p: instant delivery (e-mail to the users an event concerns)

Services that change the database use emit_after_commit(), so an event
never describes a change that was rolled back.
"""

import json
import time
import logging

from sqlalchemy import event
from sqlalchemy.orm import Session

from ..redis_client import get_redis

logger = logging.getLogger(__name__)

P2P_QUEUE = "events:p2p"


def emit_event(event_type: str, payload: dict) -> None:
    """
    Emit a p2p event (instant delivery).

    Pushed to Redis list `events:p2p` for the consumer loop.
    """
    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        get_redis().rpush(P2P_QUEUE, json.dumps(event))
        logger.info(f"Event emitted: {event_type} → {P2P_QUEUE}")
    except Exception as e:
        logger.error(f"Failed to emit event {event_type}: {e}")


def emit_after_commit(db: Session, event_type: str, payload: dict) -> None:
    """Emit once the session's transaction commits; dropped on rollback."""
    db.info.setdefault("pending_events", []).append((event_type, payload))


@event.listens_for(Session, "after_commit")
def _flush_pending_events(session: Session) -> None:
    for event_type, payload in session.info.pop("pending_events", []):
        emit_event(event_type, payload)


@event.listens_for(Session, "after_rollback")
def _drop_pending_events(session: Session) -> None:
    session.info.pop("pending_events", None)
