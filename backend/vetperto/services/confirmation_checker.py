"""
Appointment confirmation request checker.

Appointments starting within CONFIRM_BEFORE_HOURS that have no
confirmation request yet get one: a single-use token that lets the tutor
confirm or ask to reschedule from the e-mail.

Runs as an asyncio task in backend lifespan.
"""

import asyncio
import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..database import SessionLocal
from ..models.tables import AppointmentConfirmations, Appointments
from .confirmations import create_confirmation_request

logger = logging.getLogger(__name__)

CHECK_INTERVAL = 300  # seconds between checks
CONFIRM_BEFORE_HOURS = 24


async def confirmation_checker_loop() -> None:
    logger.info("confirmation_checker_loop started")

    try:
        while True:
            try:
                await asyncio.to_thread(_run_once)
            except asyncio.CancelledError:
                logger.info("confirmation_checker_loop cancelled")
                raise
            except Exception:
                logger.exception("confirmation_checker_loop error")

            await asyncio.sleep(CHECK_INTERVAL)
    except asyncio.CancelledError:
        pass


def _run_once() -> None:
    db = SessionLocal()
    try:
        request_confirmations(db, datetime.now())
    finally:
        db.close()


def request_confirmations(db: Session, now: datetime) -> list[int]:
    """Create confirmation requests that are due. Returns appointment ids."""
    limit = now + timedelta(hours=CONFIRM_BEFORE_HOURS)

    already_requested = select(AppointmentConfirmations.appointment_id)
    candidates = (
        db.query(Appointments)
        .filter(
            Appointments.status.in_(["pending", "confirmed"]),
            Appointments.appointment_date >= now.date().isoformat(),
            Appointments.appointment_date <= limit.date().isoformat(),
            ~Appointments.id.in_(already_requested),
        )
        .all()
    )

    requested = []
    for appt in candidates:
        start = datetime.fromisoformat(f"{appt.appointment_date}T{appt.start_time}")
        if not now < start <= limit:
            continue
        create_confirmation_request(db, appt, now)
        requested.append(appt.id)

    if requested:
        db.commit()
        logger.info(f"Confirmation requests created for appointments {requested}")
    return requested
