# backend/vetperto/routers/slots.py
"""
Slot cache endpoints for admins and internal jobs.

GET  /slots/grid        - Level 1 sorted set view for a professional and date
POST /slots/warm        - precompute Level 1 cells for the next days
POST /slots/invalidate  - drop cached cells
"""

from datetime import date, datetime, timedelta
from fastapi import APIRouter, Depends, Query
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..redis_client import get_redis
from ..schemas.slots import GridCell, GridResponse
from ..services.slots import (
    SlotsRedisStore,
    calculate_day_cells,
    get_scheduling_config,
    invalidate_professional_cache,
)
from ..services.slots.invalidator import get_affected_dates

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/grid", response_model=GridResponse)
def get_slots_grid(
    professional_id: int,
    target_date: date = Query(..., alias="date"),
    force_recalc: bool = False,
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    """Get sorted set debug view for professional and date."""
    config = get_scheduling_config()
    store = SlotsRedisStore(redis, config)
    now = datetime.now()

    cached = False
    cells = None

    if not force_recalc:
        cells = store.get_all_cells(professional_id, target_date)
        cached = cells is not None

    if cells is None:
        cells = calculate_day_cells(db, professional_id, target_date, config, now)
        store.store_day_cells(professional_id, target_date, cells)

    grid = [
        GridCell(
            start=cell.start,
            end=cell.end,
            location_type=cell.location_type,
            expires_at=datetime.fromtimestamp(cell.expire_ts),
        )
        for cell in cells
    ]

    return GridResponse(
        professional_id=professional_id,
        date=target_date,
        cells=grid,
        total_cells=len(grid),
        cached=cached,
    )


@router.post("/warm")
def warm_slots_cache(
    professional_id: int,
    days: int = Query(14, ge=1, le=180),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
):
    """Calculate and store Level 1 cells for today + days, skipping cached days."""
    config = get_scheduling_config()
    store = SlotsRedisStore(redis, config)
    now = datetime.now()

    dates = get_affected_dates(now.date(), now.date() + timedelta(days=min(days, config.horizon_days) - 1))
    counts = {dt: store.count_live(professional_id, dt, now) for dt in dates}

    missing = {
        dt: calculate_day_cells(db, professional_id, dt, config, now)
        for dt, count in counts.items()
        if count is None
    }
    store.store_multiple_days(professional_id, missing)

    return {
        "professional_id": professional_id,
        "calculated": len(missing),
        "cells": {
            dt.isoformat(): len(missing[dt]) if dt in missing else counts[dt]
            for dt in dates
        },
    }


@router.post("/invalidate")
def invalidate_slots_cache(
    professional_id: int,
    date_from: date | None = None,
    date_to: date | None = None,
    redis: Redis = Depends(get_redis),
):
    """Manually invalidate slots cache for a professional (all days without a range)."""
    dates = None
    if date_from:
        dates = get_affected_dates(date_from, date_to or date_from)

    deleted = invalidate_professional_cache(redis, professional_id, dates)

    return {
        "professional_id": professional_id,
        "deleted_keys": deleted,
        "dates": [d.isoformat() for d in dates] if dates else "all",
    }
