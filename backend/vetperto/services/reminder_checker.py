"""
Appointment reminder checker.

Periodically checks for upcoming appointments and sends a reminder
REMIND_BEFORE_MINUTES before they start, to both tutor and professional.

Runs as an asyncio task in backend lifespan.
Uses synchronous DB and Redis (via asyncio.to_thread).
"""

import asyncio
import logging
from datetime import datetime, timedelta

from redis import Redis
from sqlalchemy.orm import Session

from ..database import SessionLocal
from ..models.tables import Appointments
from ..redis_client import get_redis
from .notifications import notify
from .events import emit_after_commit

logger = logging.getLogger(__name__)

CHECK_INTERVAL = 60  # seconds between checks
REMIND_BEFORE_MINUTES = 120
SENT_KEY_TTL = 86400  # 24 hours; one reminder per appointment


async def reminder_checker_loop() -> None:
    """
    Periodic loop that checks for appointments needing a reminder.

    For each appointment where start - REMIND_BEFORE_MINUTES <= now < start
    and status is pending/confirmed:
    - Notify both parties and emit appointment_reminder
    - Mark as sent in Redis to avoid duplicates
    """
    logger.info("reminder_checker_loop started")

    try:
        while True:
            try:
                await asyncio.to_thread(_run_once)
            except asyncio.CancelledError:
                logger.info("reminder_checker_loop cancelled")
                raise
            except Exception:
                logger.exception("reminder_checker_loop error")

            await asyncio.sleep(CHECK_INTERVAL)
    except asyncio.CancelledError:
        pass


def _run_once() -> None:
    db = SessionLocal()
    try:
        check_upcoming_appointments(db, get_redis(), datetime.now())
    finally:
        db.close()


def check_upcoming_appointments(db: Session, redis: Redis, now: datetime) -> list[int]:
    """Send due reminders (synchronous). Returns the reminded appointment ids."""
    today = now.date()
    horizon = now + timedelta(minutes=REMIND_BEFORE_MINUTES)

    appointments = (
        db.query(Appointments)
        .filter(
            Appointments.status.in_(["pending", "confirmed"]),
            Appointments.appointment_date >= today.isoformat(),
            Appointments.appointment_date <= horizon.date().isoformat(),
        )
        .all()
    )

    reminded = []
    for appt in appointments:
        queued = set(db.new)
        try:
            if _process_single_appointment(db, redis, appt, now):
                reminded.append(appt.id)
        except Exception:
            logger.exception(f"Error processing appointment {appt.id} for reminder")
            # half-built reminders must not be committed with the others
            for obj in [obj for obj in db.new if obj not in queued]:
                db.expunge(obj)

    if reminded:
        db.commit()
        for appointment_id in reminded:
            redis.setex(f"apptremind:sent:{appointment_id}", SENT_KEY_TTL, "1")
    return reminded


def _process_single_appointment(db: Session, redis: Redis, appt: Appointments, now: datetime) -> bool:
    """Queue the reminder if the appointment is inside the reminder window."""
    if redis.exists(f"apptremind:sent:{appt.id}"):
        return False

    try:
        start = datetime.fromisoformat(f"{appt.appointment_date}T{appt.start_time}")
    except (ValueError, TypeError):
        return False

    # Reminder window: start - REMIND_BEFORE_MINUTES <= now < start
    if now < start - timedelta(minutes=REMIND_BEFORE_MINUTES) or now >= start:
        return False

    for profile_id in (appt.tutor_profile_id, appt.professional_profile_id):
        notify(
            db,
            profile_id,
            "appointment_reminder",
            appt.start_time,
            type="reminder",
            related_appointment_id=appt.id,
        )
    emit_after_commit(db, "appointment_reminder", {"appointment_id": appt.id})

    logger.info(
        f"appointment_reminder queued for appointment={appt.id} "
        f"(starts at {appt.start_time}, reminded {REMIND_BEFORE_MINUTES} min before)"
    )
    return True
