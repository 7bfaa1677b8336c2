# backend/vetperto/services/slots/holds.py
"""
Short-lived slot holds for booking wizard sessions.

Key format: hold:{professional_id}:{date}:{cell_start}
Value: owner (wizard session id)

A slot is held by writing one key per cell it covers in a single
transaction, so two overlapping slots can never both be held: they
always share at least one cell.
"""

import logging
from datetime import date
from redis import Redis
from redis.exceptions import WatchError

logger = logging.getLogger(__name__)

HOLD_PREFIX = "hold"


def _key(professional_id: int, dt: date, cell_start: str) -> str:
    return f"{HOLD_PREFIX}:{professional_id}:{dt.isoformat()}:{cell_start}"


def acquire_hold(
    redis: Redis,
    professional_id: int,
    dt: date,
    cell_starts: list[str],
    owner: str,
    ttl: int,
) -> bool:
    """Hold every cell of a slot for owner. All or nothing."""
    if not cell_starts:
        return False

    keys = [_key(professional_id, dt, start) for start in cell_starts]

    # WATCH + MULTI: every key is written together with its TTL, or none is
    with redis.pipeline() as pipe:
        try:
            pipe.watch(*keys)
            current = pipe.mget(keys)
            if any(value is not None and value != owner for value in current):
                return False

            # re-acquiring our own hold refreshes it; cells that expired
            # meanwhile are claimed again
            pipe.multi()
            for key in keys:
                pipe.set(key, owner, ex=ttl)
            pipe.execute()
        except WatchError:
            logger.info(f"Hold lost a race: professional={professional_id} date={dt} cells={cell_starts}")
            return False

    logger.info(f"Hold acquired: professional={professional_id} date={dt} cells={cell_starts} owner={owner}")
    return True


def release_hold(
    redis: Redis,
    professional_id: int,
    dt: date,
    cell_starts: list[str],
    owner: str,
) -> int:
    """Release the cells still owned by owner. Returns number of keys removed."""
    keys = [_key(professional_id, dt, start) for start in cell_starts]
    if not keys:
        return 0

    owned = [key for key, value in zip(keys, redis.mget(keys)) if value == owner]
    if not owned:
        return 0
    return redis.delete(*owned)


def held_cells(
    redis: Redis,
    professional_id: int,
    dt: date,
    exclude_owner: str | None = None,
) -> set[str]:
    """Cell starts currently held by anyone except exclude_owner."""
    pattern = f"{HOLD_PREFIX}:{professional_id}:{dt.isoformat()}:*"
    keys = list(redis.scan_iter(match=pattern))
    if not keys:
        return set()

    result = set()
    for key, value in zip(keys, redis.mget(keys)):
        if value is None or value == exclude_owner:
            continue
        # key ends with the cell start "HH:MM", which itself contains ':'
        result.add(key[-5:])
    return result
