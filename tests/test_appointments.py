from datetime import datetime, time, timedelta

import pytest

from vetperto.errors import Conflict, NotFound, PermissionDenied
from vetperto.models.tables import UserNotifications
from vetperto.services.appointments import (
    expire_pending_appointments,
    get_for_participant,
    list_for_professional,
    list_for_tutor,
    update_status,
)


def notifications_of(db, profile):
    return db.query(UserNotifications).filter(UserNotifications.profile_id == profile.id).all()


def test_professional_confirms(db, tutor, professional, make_appointment, day, now):
    appt = make_appointment(tutor, professional, day, "09:00", "10:00")

    updated = update_status(db, appt.id, professional.id, "confirmed", professional_notes="Trazer carteira", now=now)

    assert updated.status == "confirmed"
    assert updated.confirmed_at == now.isoformat(timespec="seconds")
    assert updated.professional_notes == "Trazer carteira"
    assert len(notifications_of(db, tutor)) == 1
    assert notifications_of(db, professional) == []


def test_tutor_can_only_cancel(db, tutor, professional, make_appointment, day, now):
    appt = make_appointment(tutor, professional, day, "09:00", "10:00")

    with pytest.raises(PermissionDenied):
        update_status(db, appt.id, tutor.id, "confirmed", now=now)

    updated = update_status(db, appt.id, tutor.id, "cancelled", reason="Viagem", professional_notes="x", now=now)

    assert updated.status == "cancelled"
    assert updated.cancelled_by == tutor.id
    assert updated.cancellation_reason == "Viagem"
    # notes are the professional's field
    assert updated.professional_notes is None
    assert len(notifications_of(db, professional)) == 1


@pytest.mark.parametrize(
    "current, target",
    [
        ("pending", "completed"),
        ("pending", "no_show"),
        ("cancelled", "confirmed"),
        ("completed", "cancelled"),
        ("no_show", "completed"),
    ],
)
def test_invalid_transitions(db, tutor, professional, make_appointment, day, now, current, target):
    appt = make_appointment(tutor, professional, day, "09:00", "10:00", status=current)

    with pytest.raises(Conflict) as exc:
        update_status(db, appt.id, professional.id, target, now=now)
    assert exc.value.code == "invalid_transition"


def test_confirmed_can_be_completed_or_missed(db, tutor, professional, make_appointment, day, now):
    first = make_appointment(tutor, professional, day, "09:00", "10:00", status="confirmed")
    second = make_appointment(tutor, professional, day, "10:00", "11:00", status="confirmed")

    assert update_status(db, first.id, professional.id, "completed", now=now).status == "completed"
    assert update_status(db, second.id, professional.id, "no_show", now=now).status == "no_show"


def test_admin_acts_on_any_appointment(db, tutor, professional, admin, make_appointment, day, now):
    appt = make_appointment(tutor, professional, day, "09:00", "10:00")

    updated = update_status(db, appt.id, admin.id, "confirmed", is_admin=True, now=now)

    assert updated.status == "confirmed"
    assert len(notifications_of(db, tutor)) == 1
    assert len(notifications_of(db, professional)) == 1


def test_outsiders_cannot_see_appointments(db, make_profile, tutor, professional, make_appointment, day):
    appt = make_appointment(tutor, professional, day, "09:00", "10:00")
    outsider = make_profile("tutor")

    with pytest.raises(PermissionDenied):
        get_for_participant(db, appt.id, outsider.id)
    with pytest.raises(NotFound):
        get_for_participant(db, appt.id + 100, tutor.id)

    assert get_for_participant(db, appt.id, outsider.id, is_admin=True).id == appt.id


def test_listing(db, tutor, professional, make_appointment, day):
    later = make_appointment(tutor, professional, day + timedelta(days=3), "09:00", "10:00")
    earlier = make_appointment(tutor, professional, day, "11:00", "12:00", status="confirmed")

    assert [a.id for a in list_for_tutor(db, tutor.id)] == [earlier.id, later.id]
    assert [a.id for a in list_for_tutor(db, tutor.id, status="confirmed")] == [earlier.id]
    assert [a.id for a in list_for_professional(db, professional.id, date_from=day + timedelta(days=1))] == [later.id]
    assert list_for_professional(db, professional.id, date_to=day - timedelta(days=1)) == []


def test_expire_pending_appointments(db, redis, tutor, professional, make_appointment, day):
    yesterday = make_appointment(tutor, professional, day - timedelta(days=1), "15:00", "16:00")
    started = make_appointment(tutor, professional, day, "09:00", "10:00")
    upcoming = make_appointment(tutor, professional, day, "11:00", "12:00")
    confirmed = make_appointment(tutor, professional, day, "08:00", "09:00", status="confirmed")
    now = datetime.combine(day, time(10, 15))

    expired = expire_pending_appointments(db, now)

    assert sorted(expired) == sorted([yesterday.id, started.id])
    for appt in (yesterday, started):
        db.refresh(appt)
        assert appt.status == "cancelled"
        assert appt.cancellation_reason == "expired"
    db.refresh(upcoming)
    db.refresh(confirmed)
    assert upcoming.status == "pending"
    assert confirmed.status == "confirmed"

    # both parties are told, per appointment
    assert len(notifications_of(db, tutor)) == 2
    assert len(notifications_of(db, professional)) == 2
    assert expire_pending_appointments(db, now) == []
