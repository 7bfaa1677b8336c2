# backend/vetperto/services/slots/redis_store.py
"""
Redis storage for Level 1 cells using Sorted Sets.

Key format: slots:day:{professional_id}:{date}
Value: Sorted Set where member = "HH:MM-HH:MM@location_type",
       score = expire_ts (unix timestamp when the cell stops being bookable).

Query: ZRANGEBYSCORE key {now_ts} +inf → only live cells.
Sentinel: "__empty__" with score=0 marks "calculated, zero cells".
"""

from datetime import date, datetime
from redis import Redis

from .calculator import Cell, parse_member
from .config import SchedulingConfig, get_scheduling_config


EMPTY_SENTINEL = "__empty__"


class SlotsRedisStore:
    """Redis storage wrapper using Sorted Sets for cell data."""

    KEY_PREFIX = "slots:day"

    def __init__(self, redis: Redis, config: SchedulingConfig | None = None):
        self.redis = redis
        self.config = config or get_scheduling_config()

    def _key(self, professional_id: int, dt: date) -> str:
        return f"{self.KEY_PREFIX}:{professional_id}:{dt.isoformat()}"

    def _queue_store(self, pipe, professional_id: int, dt: date, cells: list[Cell]) -> None:
        key = self._key(professional_id, dt)
        pipe.delete(key)

        if cells:
            pipe.zadd(key, {cell.member: cell.expire_ts for cell in cells})
            max_expire = max(cell.expire_ts for cell in cells)
            # Key lives until the last cell expires + 1 minute buffer
            pipe.expireat(key, int(max_expire) + 60)
        else:
            # Empty day: sentinel so EXISTS returns True
            pipe.zadd(key, {EMPTY_SENTINEL: 0})
            end_of_day = datetime.combine(dt, datetime.max.time())
            pipe.expireat(key, int(end_of_day.timestamp()) + 60)

    # ── Write ────────────────────────────────────────────────────────────

    def store_day_cells(
        self,
        professional_id: int,
        dt: date,
        cells: list[Cell],
    ) -> None:
        """Store calculated cells for a day. Empty list → sentinel is stored."""
        pipe = self.redis.pipeline()
        self._queue_store(pipe, professional_id, dt, cells)
        pipe.execute()

    def store_multiple_days(
        self,
        professional_id: int,
        days_cells: dict[date, list[Cell]],
    ) -> None:
        """Batch store cells for multiple days via pipeline."""
        if not days_cells:
            return

        pipe = self.redis.pipeline()
        for dt, cells in days_cells.items():
            self._queue_store(pipe, professional_id, dt, cells)
        pipe.execute()

    # ── Read ─────────────────────────────────────────────────────────────

    def get_live_cells(
        self,
        professional_id: int,
        dt: date,
        now: datetime,
    ) -> list[Cell] | None:
        """
        Get live cells for a day, sorted by start time.

        Returns None on cache miss.
        """
        key = self._key(professional_id, dt)
        if not self.redis.exists(key):
            return None

        raw = self.redis.zrangebyscore(key, now.timestamp(), "+inf", withscores=True)
        cells = [
            parse_member(member, score)
            for member, score in raw
            if member != EMPTY_SENTINEL
        ]
        cells.sort(key=lambda c: c.start)
        return cells

    def count_live(
        self,
        professional_id: int,
        dt: date,
        now: datetime,
    ) -> int | None:
        """Count live cells for a day, or None on cache miss."""
        key = self._key(professional_id, dt)
        if not self.redis.exists(key):
            return None

        return self.redis.zcount(key, now.timestamp(), "+inf")

    # ── Delete ───────────────────────────────────────────────────────────

    def delete_day_cells(
        self,
        professional_id: int,
        dates: list[date] | None = None,
    ) -> int:
        """
        Delete cached cells.

        Args:
            professional_id: Professional profile ID
            dates: Specific dates, or None to delete every cached day.

        Returns:
            Number of deleted keys.
        """
        if dates:
            keys = [self._key(professional_id, dt) for dt in dates]
        else:
            pattern = f"{self.KEY_PREFIX}:{professional_id}:*"
            keys = list(self.redis.scan_iter(match=pattern))

        if not keys:
            return 0

        return self.redis.delete(*keys)

    # ── Debug ────────────────────────────────────────────────────────────

    def get_all_cells(self, professional_id: int, dt: date) -> list[Cell] | None:
        """All stored cells including expired ones (debug endpoint)."""
        key = self._key(professional_id, dt)
        if not self.redis.exists(key):
            return None

        raw = self.redis.zrangebyscore(key, "-inf", "+inf", withscores=True)
        return [
            parse_member(member, score)
            for member, score in raw
            if member != EMPTY_SENTINEL
        ]
