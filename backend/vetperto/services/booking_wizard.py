# backend/vetperto/services/booking_wizard.py
"""
Three-step booking wizard with server-side state.

    step 1  choose service
    step 2  choose date, then slot (slot is held in Redis for the session)
    step 3  pet, location, notes → submit

State lives in Redis (booking:wizard:{session_id}, TTL refreshed on every
change). Submitting creates the appointment through
create_appointment_secure(); submitting again returns the same
appointment.
"""

import json
import logging
from datetime import date, datetime, timedelta
from uuid import uuid4

from redis import Redis
from sqlalchemy.orm import Session

from ..errors import NoCreditsAvailable, NotFound, PermissionDenied, SlotUnavailable, ValidationFailed, WizardError
from ..models.tables import Appointments
from .appointments import (
    create_appointment_secure,
    get_bookable_professional,
    get_bookable_service,
    get_owned_pet,
    resolve_location,
)
from .credits import check_professional_credits
from .slots import SchedulingConfig, TimeSlot, find_slot, get_available_slots, get_scheduling_config
from .slots.holds import acquire_hold, release_hold

logger = logging.getLogger(__name__)

WIZARD_PREFIX = "booking:wizard"
SUBMIT_LOCK_TTL = 30


class BookingWizard:
    def __init__(
        self,
        db: Session,
        redis: Redis,
        config: SchedulingConfig | None = None,
        now: datetime | None = None,
    ):
        self.db = db
        self.redis = redis
        self.config = config or get_scheduling_config()
        self._now = now

    @property
    def now(self) -> datetime:
        return self._now or datetime.now()

    # ── State ────────────────────────────────────────────────────────────

    def _key(self, session_id: str) -> str:
        return f"{WIZARD_PREFIX}:{session_id}"

    def _save(self, state: dict) -> dict:
        self.redis.setex(self._key(state["id"]), self.config.wizard_ttl_seconds, json.dumps(state))
        return state

    def load(self, session_id: str, tutor_id: int) -> dict:
        raw = self.redis.get(self._key(session_id))
        if not raw:
            raise NotFound("Booking session not found or expired")
        state = json.loads(raw)
        if state["tutor_id"] != tutor_id:
            raise PermissionDenied("Booking session belongs to another user")
        return state

    def _editable(self, session_id: str, tutor_id: int) -> dict:
        state = self.load(session_id, tutor_id)
        if state.get("appointment_id"):
            raise WizardError("Booking already submitted")
        return state

    # ── Steps ────────────────────────────────────────────────────────────

    def start(self, tutor_id: int, professional_id: int) -> dict:
        professional = get_bookable_professional(self.db, professional_id)
        state = {
            "id": uuid4().hex,
            "tutor_id": tutor_id,
            "professional_id": professional.id,
            "step": 1,
            "service_id": None,
            "duration_minutes": None,
            "date": None,
            "slot": None,
            "location_type": None,
            "location_address": None,
            "pet_id": None,
            "notes": None,
            "appointment_id": None,
            "credits": check_professional_credits(self.db, professional.id),
        }
        logger.info(f"Booking wizard started: session={state['id']} tutor={tutor_id} professional={professional.id}")
        return self._save(state)

    def select_service(self, session_id: str, tutor_id: int, service_id: int) -> dict:
        state = self._editable(session_id, tutor_id)

        credits = check_professional_credits(self.db, state["professional_id"])
        state["credits"] = credits
        if not credits["has_credits"]:
            self._save(state)
            raise NoCreditsAvailable("This professional cannot accept new appointments right now")

        service = get_bookable_service(self.db, state["professional_id"], service_id)

        self._release(state)
        state.update(
            step=2,
            service_id=service.id,
            duration_minutes=service.duration_minutes,
            date=None,
            slot=None,
            location_type=None,
        )
        return self._save(state)

    def select_date(self, session_id: str, tutor_id: int, target_date: date) -> tuple[dict, list[TimeSlot]]:
        state = self._editable(session_id, tutor_id)
        if state["step"] < 2:
            raise WizardError("Choose a service first")

        today = self.now.date()
        if target_date < today:
            raise ValidationFailed("Date cannot be in the past")
        if target_date > today + timedelta(days=self.config.horizon_days):
            raise ValidationFailed(f"Date cannot be more than {self.config.horizon_days} days ahead")

        # a new date always drops the previous slot choice
        self._release(state)
        state.update(step=2, date=target_date.isoformat(), slot=None, location_type=None)
        self._save(state)

        slots = get_available_slots(
            self.db,
            state["professional_id"],
            target_date,
            state["duration_minutes"],
            config=self.config,
            redis=self.redis,
            now=self.now,
            hold_owner=state["id"],
        )
        return state, slots

    def available_slots(self, session_id: str, tutor_id: int) -> list[TimeSlot]:
        state = self.load(session_id, tutor_id)
        if not state.get("date"):
            return []
        return get_available_slots(
            self.db,
            state["professional_id"],
            date.fromisoformat(state["date"]),
            state["duration_minutes"],
            config=self.config,
            redis=self.redis,
            now=self.now,
            hold_owner=state["id"],
        )

    def select_slot(self, session_id: str, tutor_id: int, slot_start: str) -> dict:
        state = self._editable(session_id, tutor_id)
        if state["step"] < 2 or not state.get("date"):
            raise WizardError("Choose a date first")

        target_date = date.fromisoformat(state["date"])
        slot = find_slot(
            self.db,
            state["professional_id"],
            target_date,
            slot_start,
            state["duration_minutes"],
            config=self.config,
            redis=self.redis,
            now=self.now,
            hold_owner=state["id"],
        )
        if slot is None:
            raise SlotUnavailable("Selected time is not available")

        self._release(state)
        if not acquire_hold(
            self.redis,
            state["professional_id"],
            target_date,
            list(slot.cells),
            state["id"],
            self.config.hold_ttl_seconds,
        ):
            # the previous slot is no longer held
            state.update(step=2, slot=None)
            self._save(state)
            raise SlotUnavailable("Selected time was just taken by someone else")

        state.update(
            step=3,
            slot=slot._asdict(),
            location_type=resolve_location(slot.location_type, None),
        )
        if state["location_type"] != "home_visit":
            state["location_address"] = None
        return self._save(state)

    def set_details(
        self,
        session_id: str,
        tutor_id: int,
        pet_id: int | None = None,
        location_type: str | None = None,
        location_address: str | None = None,
        notes: str | None = None,
    ) -> dict:
        state = self._editable(session_id, tutor_id)
        if state["step"] < 3:
            raise WizardError("Choose a time slot first")

        if pet_id is not None:
            get_owned_pet(self.db, tutor_id, pet_id)
            state["pet_id"] = pet_id

        if location_type is not None:
            state["location_type"] = resolve_location(state["slot"]["location_type"], location_type)

        if location_address is not None:
            state["location_address"] = location_address.strip() or None
        if state["location_type"] != "home_visit":
            state["location_address"] = None

        if notes is not None:
            state["notes"] = notes.strip() or None

        self._refresh_hold(state)
        return self._save(state)

    def back(self, session_id: str, tutor_id: int) -> dict:
        state = self._editable(session_id, tutor_id)
        if state["step"] == 3:
            self._release(state)
            state.update(step=2, slot=None, location_type=None)
        elif state["step"] == 2:
            state.update(step=1, date=None)
        else:
            raise WizardError("Already at the first step")
        return self._save(state)

    def submit(self, session_id: str, tutor_id: int) -> Appointments:
        state = self.load(session_id, tutor_id)

        if state.get("appointment_id"):
            appt = self.db.get(Appointments, state["appointment_id"])
            if appt:
                return appt

        if state["step"] != 3 or not state.get("slot"):
            raise WizardError("Booking is not complete")
        if not state.get("pet_id"):
            raise ValidationFailed("Choose a pet", code="pet_required")
        if state["location_type"] == "home_visit" and not state.get("location_address"):
            raise ValidationFailed("Address is required for home visits", code="address_required")

        lock_key = f"{self._key(session_id)}:submit"
        if not self.redis.set(lock_key, "1", nx=True, ex=SUBMIT_LOCK_TTL):
            raise WizardError("Booking is already being submitted")

        try:
            # the hold may have expired while the tutor filled the form
            self._refresh_hold(state)

            appt = create_appointment_secure(
                self.db,
                tutor_id=tutor_id,
                professional_id=state["professional_id"],
                service_id=state["service_id"],
                pet_id=state["pet_id"],
                appointment_date=date.fromisoformat(state["date"]),
                start_time=state["slot"]["slot_start"],
                location_type=state["location_type"],
                location_address=state.get("location_address"),
                tutor_notes=state.get("notes"),
                redis=self.redis,
                hold_owner=state["id"],
                config=self.config,
                now=self.now,
            )

            state["appointment_id"] = appt.id
            self._release(state)
            self._save(state)
        finally:
            self.redis.delete(lock_key)

        logger.info(f"Booking wizard submitted: session={session_id} appointment={appt.id}")
        return appt

    def cancel(self, session_id: str, tutor_id: int) -> None:
        state = self.load(session_id, tutor_id)
        self._release(state)
        self.redis.delete(self._key(session_id))
        logger.info(f"Booking wizard cancelled: session={session_id}")

    # ── Holds ────────────────────────────────────────────────────────────

    def _release(self, state: dict) -> None:
        slot = state.get("slot")
        if not slot or not state.get("date"):
            return
        release_hold(
            self.redis,
            state["professional_id"],
            date.fromisoformat(state["date"]),
            list(slot["cells"]),
            state["id"],
        )

    def _refresh_hold(self, state: dict) -> None:
        slot = state["slot"]
        if not acquire_hold(
            self.redis,
            state["professional_id"],
            date.fromisoformat(state["date"]),
            list(slot["cells"]),
            state["id"],
            self.config.hold_ttl_seconds,
        ):
            raise SlotUnavailable("Your reservation expired and the time was taken")
