"""
E-mail delivery through an HTTP e-mail API (Resend compatible).

Delivery is disabled when EMAIL_API_KEY is not configured.
"""

import logging

import httpx

from ...config import settings

logger = logging.getLogger(__name__)

TIMEOUT = 10.0


async def send_email(to: str, subject: str, text: str, html: str | None = None) -> bool:
    """
    Send one e-mail. Returns True when the API accepted it.

    Raises httpx.HTTPError on transport or API errors so the consumer
    can retry the event.
    """
    if not settings.email_api_key:
        logger.debug(f"E-mail disabled, skipping message to {to}: {subject}")
        return False

    payload = {
        "from": settings.email_from,
        "to": [to],
        "subject": subject,
        "text": text,
    }
    if html:
        payload["html"] = html

    async with httpx.AsyncClient() as client:
        response = await client.post(
            settings.email_api_url,
            json=payload,
            headers={"Authorization": f"Bearer {settings.email_api_key}"},
            timeout=TIMEOUT,
        )
        response.raise_for_status()

    logger.info(f"E-mail sent to {to}: {subject}")
    return True
