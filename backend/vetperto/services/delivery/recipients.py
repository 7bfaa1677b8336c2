"""
Recipient resolution for delivery events.

Reads the database synchronously; handlers call these helpers through
asyncio.to_thread.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ...database import SessionLocal
from ...models.tables import Appointments, Profiles

logger = logging.getLogger(__name__)


@dataclass
class Recipient:
    profile_id: int
    email: str
    full_name: str
    role: str


@dataclass
class AppointmentContext:
    appointment_id: int
    date: str
    start_time: str
    service_name: str
    tutor: Recipient
    professional: Recipient


def _recipient(profile: Profiles, role: str) -> Recipient:
    return Recipient(
        profile_id=profile.id,
        email=profile.email,
        full_name=profile.full_name,
        role=role,
    )


def load_profile(profile_id: int) -> Optional[Recipient]:
    db = SessionLocal()
    try:
        profile = db.get(Profiles, profile_id)
        if not profile:
            logger.error(f"Profile not found: {profile_id}")
            return None
        return _recipient(profile, profile.user_type)
    finally:
        db.close()


def load_appointment(appointment_id: int) -> Optional[AppointmentContext]:
    db = SessionLocal()
    try:
        appt = db.get(Appointments, appointment_id)
        if not appt:
            logger.error(f"Appointment not found: {appointment_id}")
            return None
        return AppointmentContext(
            appointment_id=appt.id,
            date=appt.appointment_date,
            start_time=appt.start_time,
            service_name=appt.service.name if appt.service else "",
            tutor=_recipient(appt.tutor, "tutor"),
            professional=_recipient(appt.professional, "professional"),
        )
    finally:
        db.close()
