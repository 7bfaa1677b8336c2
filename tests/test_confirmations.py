import json
from datetime import datetime, time, timedelta

import pytest

from vetperto.errors import Conflict, NotFound, TokenExpired, ValidationFailed
from vetperto.models.tables import AppointmentConfirmations, UserNotifications
from vetperto.services import reminder_checker
from vetperto.services.confirmation_checker import request_confirmations
from vetperto.services.confirmations import TOKEN_TTL_HOURS, confirm_by_token
from vetperto.services.events import P2P_QUEUE
from vetperto.services.reminder_checker import check_upcoming_appointments


def token_for(db, appointment):
    return (
        db.query(AppointmentConfirmations)
        .filter(AppointmentConfirmations.appointment_id == appointment.id)
        .one()
        .token
    )


@pytest.fixture
def requested(db, tutor, professional, make_appointment, day, now):
    """Pending appointment on day 09:00 with a confirmation request issued at now."""
    appt = make_appointment(tutor, professional, day, "09:00", "10:00")
    assert request_confirmations(db, now) == [appt.id]
    return appt


# ── Confirmation requests ────────────────────────────────────────────────


def test_request_confirmations_window(db, redis, tutor, professional, make_appointment, day, now):
    due = make_appointment(tutor, professional, day, "09:00", "10:00")
    make_appointment(tutor, professional, day + timedelta(days=1), "13:00", "14:00")
    make_appointment(tutor, professional, day, "10:00", "11:00", status="cancelled")

    assert request_confirmations(db, now) == [due.id]
    assert request_confirmations(db, now) == []

    token = token_for(db, due)
    note = (
        db.query(UserNotifications)
        .filter(UserNotifications.profile_id == tutor.id)
        .one()
    )
    assert token in note.action_url
    assert note.related_appointment_id == due.id

    events = [json.loads(raw) for raw in redis.lrange(P2P_QUEUE, 0, -1)]
    assert {"type": "appointment_confirmation_requested", "token": token}.items() <= events[-1].items()


# ── Token use ────────────────────────────────────────────────────────────


def test_confirm_by_token(db, requested, professional, now):
    token = token_for(db, requested)

    result = confirm_by_token(db, token, "confirm", now + timedelta(hours=1))

    assert result == {"status": "confirmed", "appointment_id": requested.id, "appointment_status": "confirmed"}
    db.refresh(requested)
    assert requested.confirmed_at is not None

    again = confirm_by_token(db, token, "reschedule", now + timedelta(hours=2))
    assert again["status"] == "already_processed"
    assert again["appointment_status"] == "confirmed"


def test_reschedule_request_keeps_appointment(db, requested, professional, now):
    token = token_for(db, requested)

    result = confirm_by_token(db, token, "reschedule", now)

    assert result["status"] == "reschedule_requested"
    assert result["appointment_status"] == "pending"
    kinds = [
        n.type
        for n in db.query(UserNotifications).filter(UserNotifications.profile_id == professional.id)
    ]
    assert kinds == ["warning"]


def test_token_errors(db, requested, now):
    token = token_for(db, requested)

    with pytest.raises(NotFound):
        confirm_by_token(db, "nope", "confirm", now)
    with pytest.raises(ValidationFailed):
        confirm_by_token(db, token, "maybe", now)
    with pytest.raises(TokenExpired):
        confirm_by_token(db, token, "confirm", now + timedelta(hours=TOKEN_TTL_HOURS, minutes=1))


def test_token_for_cancelled_appointment(db, requested, now):
    requested.status = "cancelled"
    db.commit()

    with pytest.raises(Conflict):
        confirm_by_token(db, token_for(db, requested), "confirm", now)


# ── Reminders ────────────────────────────────────────────────────────────


def test_reminders_sent_once_inside_window(db, redis, tutor, professional, make_appointment, day):
    soon = make_appointment(tutor, professional, day, "09:00", "10:00", status="confirmed")
    make_appointment(tutor, professional, day, "10:00", "11:00")
    make_appointment(tutor, professional, day, "07:00", "08:00")
    now = datetime.combine(day, time(7, 30))

    assert check_upcoming_appointments(db, redis, now) == [soon.id]
    assert redis.exists(f"apptremind:sent:{soon.id}")

    reminders = db.query(UserNotifications).filter(UserNotifications.type == "reminder").all()
    assert sorted(n.profile_id for n in reminders) == sorted([tutor.id, professional.id])

    assert check_upcoming_appointments(db, redis, now + timedelta(minutes=5)) == []


def test_failed_reminder_leaves_no_partial_notifications(monkeypatch, db, redis, tutor, professional, make_appointment, day):
    first = make_appointment(tutor, professional, day, "08:30", "09:00")
    second = make_appointment(tutor, professional, day, "09:00", "10:00", status="confirmed")
    now = datetime.combine(day, time(8, 0))

    real_emit = reminder_checker.emit_after_commit
    broken = {first.id}

    def emit(db, event_type, payload):
        if payload["appointment_id"] in broken:
            raise RuntimeError("queue down")
        real_emit(db, event_type, payload)

    monkeypatch.setattr(reminder_checker, "emit_after_commit", emit)

    assert check_upcoming_appointments(db, redis, now) == [second.id]
    reminders = db.query(UserNotifications).filter(UserNotifications.type == "reminder").all()
    assert {n.related_appointment_id for n in reminders} == {second.id}
    assert len(reminders) == 2

    broken.clear()
    assert check_upcoming_appointments(db, redis, now) == [first.id]
    assert db.query(UserNotifications).filter(UserNotifications.type == "reminder").count() == 4
