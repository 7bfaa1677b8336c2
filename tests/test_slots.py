from datetime import date, datetime, time, timedelta

import pytest
from redis.client import Pipeline
from redis.exceptions import ConnectionError as RedisConnectionError

from vetperto.models.tables import Availability, BlockedDates
from vetperto.services.catalog import add_availability, add_blocked_dates
from vetperto.services.slots import (
    SchedulingConfig,
    SlotsRedisStore,
    calculate_calendar,
    calculate_day_cells,
    find_slot,
    get_available_slots,
    invalidate_professional_cache,
    is_slot_available,
)
from vetperto.services.slots.availability import get_day_cells, merge_location
from vetperto.services.slots.calendar import calendar_range
from vetperto.services.slots.config import (
    minutes_to_time_str,
    normalize_time,
    time_str_to_minutes,
    weekday_name,
)
from vetperto.services.slots.holds import acquire_hold, held_cells, release_hold


def starts(items):
    return [getattr(item, "slot_start", None) or item.start for item in items]


def add_window(db, professional, start, end, location="clinic", step=30, weekday="monday"):
    db.add(Availability(
        profile_id=professional.id,
        day_of_week=weekday,
        start_time=start,
        end_time=end,
        location_type=location,
        slot_duration_minutes=step,
    ))
    db.commit()


# ── Time helpers ─────────────────────────────────────────────────────────


def test_time_helpers():
    assert time_str_to_minutes("09:30") == 570
    assert time_str_to_minutes("09:30:00") == 570
    assert minutes_to_time_str(570) == "09:30"
    assert minutes_to_time_str(1440) == "24:00"
    assert normalize_time("9:05:00") == "09:05"
    assert weekday_name(date(2030, 1, 7)) == "monday"
    assert weekday_name(date(2030, 1, 13)) == "sunday"

    with pytest.raises(ValueError):
        time_str_to_minutes("25:00")


def test_scheduling_config_rejects_unknown_slot_length():
    with pytest.raises(ValueError):
        SchedulingConfig(default_slot_minutes=20)


# ── Level 1: cells ───────────────────────────────────────────────────────


def test_cells_cover_the_window(db, professional, day, now, config):
    cells = calculate_day_cells(db, professional.id, day, config, now)

    assert starts(cells) == ["09:00", "09:30", "10:00", "10:30", "11:00", "11:30"]
    assert cells[0].end == "09:30"
    assert cells[-1].end == "12:00"
    assert {c.location_type for c in cells} == {"clinic"}
    assert cells[0].member == "09:00-09:30@clinic"

    expected = datetime.combine(day, time(9, 0)) - timedelta(minutes=config.min_advance_minutes)
    assert cells[0].expire_ts == expected.timestamp()


def test_cells_respect_min_advance(db, professional, day, config):
    now = datetime.combine(day, time(8, 0))

    cells = calculate_day_cells(db, professional.id, day, config, now)

    # 10:00 expires exactly at 08:00 and is no longer bookable
    assert starts(cells) == ["10:30", "11:00", "11:30"]


def test_blocked_date_has_no_cells(db, professional, day, now, config):
    db.add(BlockedDates(profile_id=professional.id, blocked_date=day.isoformat(), reason="Férias"))
    db.commit()

    assert calculate_day_cells(db, professional.id, day, config, now) == []
    # the next day is unaffected
    assert len(calculate_day_cells(db, professional.id, day + timedelta(days=1), config, now)) == 6


def test_inactive_professional_has_no_cells(db, professional, day, now, config):
    professional.is_active = 0
    db.commit()

    assert calculate_day_cells(db, professional.id, day, config, now) == []


def test_window_step_drops_incomplete_tail(db, make_profile, day, now, config):
    pro = make_profile("profissional")
    add_window(db, pro, "09:00", "11:00", step=45)

    cells = calculate_day_cells(db, pro.id, day, config, now)

    assert [(c.start, c.end) for c in cells] == [("09:00", "09:45"), ("09:45", "10:30")]


def test_overlapping_windows_earliest_wins(db, make_profile, day, now, config):
    pro = make_profile("profissional")
    add_window(db, pro, "10:00", "12:00", location="home_visit")
    add_window(db, pro, "09:00", "11:00", location="clinic")

    cells = calculate_day_cells(db, pro.id, day, config, now)

    assert starts(cells) == ["09:00", "09:30", "10:00", "10:30", "11:00", "11:30"]
    assert [c.location_type for c in cells] == ["clinic"] * 4 + ["home_visit"] * 2


def test_on_call_flag_does_not_hide_windows(db, make_profile, day, now, config):
    pro = make_profile("profissional")
    for start, end, on_call in (("09:00", "10:00", 0), ("14:00", "15:00", 1)):
        db.add(Availability(
            profile_id=pro.id,
            day_of_week="monday",
            start_time=start,
            end_time=end,
            is_available_for_shift=on_call,
        ))
    db.commit()

    cells = calculate_day_cells(db, pro.id, day, config, now)
    assert starts(cells) == ["09:00", "09:30", "14:00", "14:30"]

    days = calculate_calendar(db, pro.id, day, 0, config, today=day - timedelta(days=1))
    monday = next(d for d in days if d.date == day)
    assert (monday.status, monday.total_slots, monday.slots_count) == ("available", 4, 4)


# ── Level 1: Redis cache ─────────────────────────────────────────────────


def test_store_roundtrip_filters_expired(db, redis, professional, day, now, config):
    store = SlotsRedisStore(redis, config)
    cells = calculate_day_cells(db, professional.id, day, config, now)
    store.store_day_cells(professional.id, day, cells)

    assert store.get_live_cells(professional.id, day, now) == cells
    assert store.count_live(professional.id, day, now) == 6

    later = datetime.combine(day, time(8, 0))
    assert starts(store.get_live_cells(professional.id, day, later)) == ["10:30", "11:00", "11:30"]


def test_store_miss_and_empty_sentinel(redis, professional, day, now, config):
    store = SlotsRedisStore(redis, config)

    assert store.get_live_cells(professional.id, day, now) is None
    assert store.count_live(professional.id, day, now) is None

    store.store_day_cells(professional.id, day, [])

    assert store.get_live_cells(professional.id, day, now) == []
    assert redis.ttl(f"slots:day:{professional.id}:{day.isoformat()}") > 0


def test_day_cells_are_served_from_cache(db, redis, professional, day, now, config):
    first = get_day_cells(db, professional.id, day, config, now, redis)
    add_window(db, professional, "14:00", "15:00")

    # stale until invalidated
    assert get_day_cells(db, professional.id, day, config, now, redis) == first

    deleted = invalidate_professional_cache(redis, professional.id)

    assert deleted == 1
    refreshed = get_day_cells(db, professional.id, day, config, now, redis)
    assert starts(refreshed)[-2:] == ["14:00", "14:30"]


def test_catalog_changes_invalidate_cache(db, redis, professional, day, now, config):
    get_day_cells(db, professional.id, day, config, now, redis)
    get_day_cells(db, professional.id, day + timedelta(days=1), config, now, redis)

    add_blocked_dates(db, redis, professional.id, [day], "Congresso", today=now.date())

    assert not redis.exists(f"slots:day:{professional.id}:{day.isoformat()}")
    assert redis.exists(f"slots:day:{professional.id}:{(day + timedelta(days=1)).isoformat()}")
    assert get_available_slots(db, professional.id, day, 60, config, redis, now) == []

    add_availability(db, redis, professional.id, {
        "day_of_week": "tuesday",
        "start_time": "14:00",
        "end_time": "15:00",
    })

    assert not redis.keys(f"slots:day:{professional.id}:*")


# ── Level 2: bookable slots ──────────────────────────────────────────────


def test_slots_need_contiguous_cells(db, professional, day, now, config):
    slots = get_available_slots(db, professional.id, day, 60, config, now=now)

    assert starts(slots) == ["09:00", "09:30", "10:00", "10:30", "11:00"]
    assert slots[0].slot_end == "10:00"
    assert slots[0].cells == ("09:00", "09:30")
    assert slots[-1].slot_end == "12:00"


def test_slots_skip_gaps_between_windows(db, make_profile, day, now, config):
    pro = make_profile("profissional")
    add_window(db, pro, "09:00", "10:00")
    add_window(db, pro, "10:30", "11:30")

    slots = get_available_slots(db, pro.id, day, 60, config, now=now)

    assert starts(slots) == ["09:00", "10:30"]


def test_slot_location_is_merged_along_the_chain(db, make_profile, day, now, config):
    pro = make_profile("profissional")
    add_window(db, pro, "09:00", "10:00", location="clinic")
    add_window(db, pro, "10:00", "11:00", location="home_visit")
    add_window(db, pro, "11:00", "12:00", location="both")

    slots = get_available_slots(db, pro.id, day, 60, config, now=now)

    assert [(s.slot_start, s.location_type) for s in slots] == [
        ("09:00", "clinic"),
        ("10:00", "home_visit"),
        ("10:30", "home_visit"),
        ("11:00", "both"),
    ]


def test_merge_location():
    assert merge_location("both", "clinic") == "clinic"
    assert merge_location("home_visit", "both") == "home_visit"
    assert merge_location("both", "both") == "both"
    assert merge_location("clinic", "home_visit") is None


def test_active_appointments_block_overlapping_slots(
    db, professional, tutor, make_appointment, day, now, config
):
    make_appointment(tutor, professional, day, "10:00", "11:00", status="confirmed")
    make_appointment(tutor, professional, day, "09:00", "10:00", status="cancelled")

    slots = get_available_slots(db, professional.id, day, 60, config, now=now)

    assert starts(slots) == ["09:00", "11:00"]
    assert is_slot_available(db, professional.id, day, "11:00", "12:00", config, now=now)
    assert not is_slot_available(db, professional.id, day, "10:30", "11:30", config, now=now)


def test_held_cells_are_hidden_from_other_sessions(db, redis, professional, day, now, config):
    assert acquire_hold(redis, professional.id, day, ["10:00"], "session-a", 600)

    others = get_available_slots(db, professional.id, day, 60, config, redis, now, hold_owner="session-b")
    owner = get_available_slots(db, professional.id, day, 60, config, redis, now, hold_owner="session-a")

    assert starts(others) == ["09:00", "10:30", "11:00"]
    assert len(owner) == 5
    # without a hold owner the single-interval check ignores holds
    assert is_slot_available(db, professional.id, day, "10:00", "11:00", config, redis, now)
    assert not is_slot_available(
        db, professional.id, day, "10:00", "11:00", config, redis, now, hold_owner="session-b"
    )


def test_find_slot(db, professional, day, now, config):
    slot = find_slot(db, professional.id, day, "10:30", 90, config=config, now=now)

    assert slot is not None
    assert slot.slot_end == "12:00"
    assert slot.cells == ("10:30", "11:00", "11:30")
    assert find_slot(db, professional.id, day, "11:00", 90, config=config, now=now) is None
    assert find_slot(db, professional.id, day, "10:15", 30, config=config, now=now) is None


# ── Holds ────────────────────────────────────────────────────────────────


def test_hold_is_exclusive_and_refreshable(redis, day):
    assert acquire_hold(redis, 1, day, ["09:00", "09:30"], "a", 600)
    # overlapping slot shares the 09:30 cell
    assert not acquire_hold(redis, 1, day, ["09:30", "10:00"], "b", 600)
    assert acquire_hold(redis, 1, day, ["09:00", "09:30"], "a", 900)
    assert redis.ttl(f"hold:1:{day.isoformat()}:09:00") > 600

    assert held_cells(redis, 1, day) == {"09:00", "09:30"}
    assert held_cells(redis, 1, day, exclude_owner="a") == set()

    assert release_hold(redis, 1, day, ["09:00", "09:30"], "b") == 0
    assert release_hold(redis, 1, day, ["09:00", "09:30"], "a") == 2
    assert acquire_hold(redis, 1, day, ["09:30", "10:00"], "b", 600)


def test_hold_reclaims_expired_cells(redis, day):
    assert acquire_hold(redis, 1, day, ["09:00", "09:30"], "a", 600)
    redis.delete(f"hold:1:{day.isoformat()}:09:30")

    assert acquire_hold(redis, 1, day, ["09:00", "09:30"], "a", 600)
    assert redis.get(f"hold:1:{day.isoformat()}:09:30") == "a"
    assert 0 < redis.ttl(f"hold:1:{day.isoformat()}:09:30") <= 600


def test_failed_hold_leaves_no_keys_behind(redis, day, monkeypatch):
    def broken_execute(self, raise_on_error=True):
        raise RedisConnectionError("connection lost")

    monkeypatch.setattr(Pipeline, "execute", broken_execute)

    with pytest.raises(RedisConnectionError):
        acquire_hold(redis, 1, day, ["09:00", "09:30"], "a", 600)

    assert redis.keys("hold:*") == []
    assert held_cells(redis, 1, day) == set()


def test_hold_loses_race_to_concurrent_writer(redis, day, monkeypatch):
    original_multi = Pipeline.multi

    def multi_after_rival(self):
        # another session grabs a cell between the check and the write
        redis.set(f"hold:1:{day.isoformat()}:09:30", "b", ex=600)
        return original_multi(self)

    monkeypatch.setattr(Pipeline, "multi", multi_after_rival)

    assert not acquire_hold(redis, 1, day, ["09:00", "09:30"], "a", 600)
    assert redis.get(f"hold:1:{day.isoformat()}:09:00") is None
    assert held_cells(redis, 1, day) == {"09:30"}


def test_empty_hold_is_rejected(redis, day):
    assert not acquire_hold(redis, 1, day, [], "a", 600)


# ── Calendar ─────────────────────────────────────────────────────────────


def test_calendar_range():
    assert calendar_range(date(2030, 1, 17), 0) == (date(2030, 1, 1), date(2030, 1, 31))
    assert calendar_range(date(2030, 11, 3), 2) == (date(2030, 11, 1), date(2031, 1, 31))
    assert calendar_range(date(2030, 1, 31), 1) == (date(2030, 1, 1), date(2030, 2, 28))


def test_calendar_statuses(db, professional, tutor, make_appointment, day, config):
    make_appointment(tutor, professional, day, "09:00", "10:00")
    make_appointment(tutor, professional, day, "10:00", "11:00", status="cancelled")
    db.add(BlockedDates(profile_id=professional.id, blocked_date=(day + timedelta(days=1)).isoformat()))
    db.commit()
    today = day - timedelta(days=1)

    days = calculate_calendar(db, professional.id, day, 0, config, today=today)
    by_date = {d.date: d for d in days}

    assert len(days) == 31
    assert by_date[day].status == "partial"
    assert (by_date[day].total_slots, by_date[day].booked_slots, by_date[day].slots_count) == (6, 1, 5)
    assert by_date[day].selectable

    blocked = by_date[day + timedelta(days=1)]
    assert (blocked.status, blocked.slots_count, blocked.selectable) == ("blocked", 0, False)

    free = by_date[day + timedelta(days=2)]
    assert (free.status, free.slots_count, free.selectable) == ("available", 6, True)

    past = by_date[date(2030, 1, 2)]
    assert past.status == "available"
    assert not past.selectable


def test_calendar_without_windows_is_unavailable(db, make_profile, config):
    pro = make_profile("profissional")
    add_window(db, pro, "09:00", "10:00", weekday="monday")

    days = calculate_calendar(db, pro.id, date(2030, 1, 1), 0, config, today=date(2029, 12, 31))
    by_date = {d.date: d for d in days}

    assert by_date[date(2030, 1, 7)].status == "available"
    assert by_date[date(2030, 1, 8)].status == "unavailable"
    assert not by_date[date(2030, 1, 8)].selectable


def test_calendar_fully_booked_day_is_unavailable(db, make_profile, tutor, make_appointment, config):
    pro = make_profile("profissional")
    add_window(db, pro, "09:00", "10:00", weekday="monday")
    make_appointment(tutor, pro, date(2030, 1, 7), "09:00", "09:30")
    make_appointment(tutor, pro, date(2030, 1, 7), "09:30", "10:00", status="confirmed")

    days = calculate_calendar(db, pro.id, date(2030, 1, 7), 0, config, today=date(2030, 1, 1))
    monday = next(d for d in days if d.date == date(2030, 1, 7))

    assert (monday.status, monday.slots_count, monday.booked_slots) == ("unavailable", 0, 2)


def test_calendar_horizon_limits_selectable(db, professional):
    config = SchedulingConfig(horizon_days=3)
    today = date(2030, 1, 7)

    days = calculate_calendar(db, professional.id, today, 0, config, today=today)
    selectable = [d.date for d in days if d.selectable]

    assert selectable == [today + timedelta(days=i) for i in range(4)]
