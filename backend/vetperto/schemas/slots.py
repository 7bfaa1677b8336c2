# backend/vetperto/schemas/slots.py

import datetime as dt
from typing import Literal
from pydantic import BaseModel


class TimeSlotRead(BaseModel):
    slot_start: str  # HH:MM
    slot_end: str  # HH:MM
    location_type: str

    model_config = {"from_attributes": True}


class DaySlotsResponse(BaseModel):
    professional_id: int
    date: dt.date
    duration_minutes: int
    slots: list[TimeSlotRead]


class CalendarDay(BaseModel):
    date: dt.date
    status: Literal["available", "partial", "unavailable", "blocked"]
    slots_count: int
    total_slots: int
    booked_slots: int
    selectable: bool


class CalendarResponse(BaseModel):
    professional_id: int
    start_date: dt.date
    end_date: dt.date
    horizon_days: int
    days: list[CalendarDay]


class GridCell(BaseModel):
    start: str
    end: str
    location_type: str
    expires_at: dt.datetime


class GridResponse(BaseModel):
    professional_id: int
    date: dt.date
    cells: list[GridCell]
    total_cells: int
    cached: bool
