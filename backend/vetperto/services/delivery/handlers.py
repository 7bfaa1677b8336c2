"""
Delivery event handlers.

Handles: appointment_created, appointment_status_changed,
appointment_reminder, appointment_confirmation_requested,
reschedule_requested, credit_status_changed, lost_appointment_recorded,
verification_status_changed.

In-app notifications are written by the services themselves; these
handlers only push the same message out by e-mail.
"""

import asyncio
import logging

from ...config import settings
from ...i18n import t
from . import register_event
from .email import send_email
from .recipients import Recipient, load_appointment, load_profile

logger = logging.getLogger(__name__)

CREDIT_STATUS_KEYS = {
    "low_credits": "credits_low",
    "exhausted": "credits_exhausted",
    "active": "credits_reactivated",
}


async def deliver(recipients: list[Recipient], key: str, *args, link: str | None = None) -> int:
    """Send {key}_title / {key}_message to every recipient. Returns sent count."""
    lang = settings.default_lang
    subject = t(f"{key}_title", lang)
    body = t(f"{key}_message", lang, *args)
    if link:
        body = f"{body}\n\n{link}"

    sent = 0
    for recipient in recipients:
        if not recipient.email:
            continue
        if await send_email(recipient.email, subject, body):
            sent += 1
    return sent


@register_event("appointment_created")
async def handle_appointment_created(data: dict) -> None:
    ctx = await asyncio.to_thread(load_appointment, data.get("appointment_id"))
    if not ctx:
        return
    await deliver(
        [ctx.professional],
        "appointment_created",
        ctx.tutor.full_name, ctx.service_name, ctx.date, ctx.start_time,
    )


@register_event("appointment_status_changed")
async def handle_status_changed(data: dict) -> None:
    ctx = await asyncio.to_thread(load_appointment, data.get("appointment_id"))
    if not ctx:
        return

    status = data.get("status")
    changed_by = data.get("changed_by")
    recipients = [
        r for r in (ctx.tutor, ctx.professional)
        if r.profile_id != changed_by
    ]
    key = "appointment_expired" if data.get("reason") == "expired" else f"appointment_{status}"
    await deliver(recipients, key, ctx.date, ctx.start_time)


@register_event("appointment_reminder")
async def handle_reminder(data: dict) -> None:
    ctx = await asyncio.to_thread(load_appointment, data.get("appointment_id"))
    if not ctx:
        return
    await deliver([ctx.tutor, ctx.professional], "appointment_reminder", ctx.start_time)


@register_event("appointment_confirmation_requested")
async def handle_confirmation_requested(data: dict) -> None:
    ctx = await asyncio.to_thread(load_appointment, data.get("appointment_id"))
    if not ctx:
        return

    token = data.get("token")
    link = f"{settings.public_base_url}/confirmar-agendamento?token={token}"
    await deliver([ctx.tutor], "confirmation_request", ctx.date, ctx.start_time, link=link)


@register_event("reschedule_requested")
async def handle_reschedule_requested(data: dict) -> None:
    ctx = await asyncio.to_thread(load_appointment, data.get("appointment_id"))
    if not ctx:
        return
    await deliver([ctx.professional], "reschedule_requested", ctx.date, ctx.start_time)


@register_event("credit_status_changed")
async def handle_credit_status_changed(data: dict) -> None:
    key = CREDIT_STATUS_KEYS.get(data.get("status"))
    if not key:
        logger.warning(f"Unknown credit status in event: {data.get('status')}")
        return

    recipient = await asyncio.to_thread(load_profile, data.get("profile_id"))
    if not recipient:
        return
    await deliver([recipient], key, data.get("remaining", 0))


@register_event("lost_appointment_recorded")
async def handle_lost_appointment(data: dict) -> None:
    recipient = await asyncio.to_thread(load_profile, data.get("professional_id"))
    if not recipient:
        return
    await deliver([recipient], "lost_client")


@register_event("verification_status_changed")
async def handle_verification_changed(data: dict) -> None:
    recipient = await asyncio.to_thread(load_profile, data.get("profile_id"))
    if not recipient:
        return
    await deliver(
        [recipient],
        f"verification_{data.get('status')}",
        data.get("reason") or "-",
    )
