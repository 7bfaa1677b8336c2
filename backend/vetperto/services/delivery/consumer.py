"""
Background consumers for the events:p2p queue.

A failed event is parked in the sorted set events:p2p:retry, scored by the
unix time it becomes due (RETRY_DELAY_SECONDS doubled per attempt). After
MAX_RETRIES attempts it lands in the events:p2p:dead list together with
the last error.
"""

import asyncio
import json
import logging
import time

import redis.asyncio as aioredis

from ..events import P2P_QUEUE
from . import process_event

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_DELAY_SECONDS = 5

RETRY_QUEUE = f"{P2P_QUEUE}:retry"
DEAD_QUEUE = f"{P2P_QUEUE}:dead"

POP_TIMEOUT = 5
RETRY_POLL_SECONDS = 1


def retry_delay(attempt: int) -> int:
    """Seconds to wait before running attempt + 1."""
    return RETRY_DELAY_SECONDS * 2 ** (attempt - 1)


async def process_event_safe(r: aioredis.Redis, raw: str, now: float | None = None) -> None:
    """Deliver one raw queue entry; park it for retry or dead-letter it on failure."""
    try:
        event = json.loads(raw)
    except json.JSONDecodeError:
        logger.error(f"Unparseable event moved to {DEAD_QUEUE}: {raw[:200]}")
        await r.rpush(DEAD_QUEUE, raw)
        return

    attempt = event.get("_attempt", 1)
    try:
        await process_event(event)
        return
    except Exception as e:
        logger.exception(f"Event {event.get('type')} failed on attempt {attempt}/{MAX_RETRIES}")
        error = f"{type(e).__name__}: {e}"

    if attempt >= MAX_RETRIES:
        event["_error"] = error
        await r.rpush(DEAD_QUEUE, json.dumps(event))
        logger.warning(f"Event {event.get('type')} gave up after {attempt} attempts")
        return

    due = (now or time.time()) + retry_delay(attempt)
    event["_attempt"] = attempt + 1
    await r.zadd(RETRY_QUEUE, {json.dumps(event): due})


async def requeue_due_retries(r: aioredis.Redis, now: float | None = None) -> int:
    """Move retries whose time has come back onto the main queue."""
    due = await r.zrangebyscore(RETRY_QUEUE, "-inf", now or time.time())
    moved = 0
    for raw in due:
        # whoever removes the member owns it
        if await r.zrem(RETRY_QUEUE, raw):
            await r.rpush(P2P_QUEUE, raw)
            moved += 1
    return moved


async def p2p_consumer_loop(redis_url: str) -> None:
    r = aioredis.from_url(redis_url, decode_responses=True)
    logger.info(f"Event consumer listening on {P2P_QUEUE}")
    try:
        while True:
            try:
                popped = await r.brpop(P2P_QUEUE, timeout=POP_TIMEOUT)
                if popped:
                    await process_event_safe(r, popped[1])
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Event consumer error")
                await asyncio.sleep(2)
    finally:
        await r.aclose()
        logger.info("Event consumer stopped")


async def retry_consumer_loop(redis_url: str) -> None:
    r = aioredis.from_url(redis_url, decode_responses=True)
    try:
        while True:
            try:
                moved = await requeue_due_retries(r)
                if moved:
                    logger.info(f"Requeued {moved} event(s) from {RETRY_QUEUE}")
                await asyncio.sleep(RETRY_POLL_SECONDS)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Retry requeue error")
                await asyncio.sleep(5)
    finally:
        await r.aclose()
