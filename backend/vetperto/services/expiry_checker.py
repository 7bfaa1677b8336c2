"""
Pending appointment expiry checker.

Periodically cancels pending appointments whose start time has passed
without the professional confirming them.

Runs as an asyncio task in backend lifespan.
Uses synchronous DB (via asyncio.to_thread).
"""

import asyncio
import logging
from datetime import datetime

from ..database import SessionLocal
from .appointments import expire_pending_appointments

logger = logging.getLogger(__name__)

CHECK_INTERVAL = 60  # seconds between checks


async def expiry_checker_loop() -> None:
    logger.info("expiry_checker_loop started")

    try:
        while True:
            try:
                await asyncio.to_thread(_run_once)
            except asyncio.CancelledError:
                logger.info("expiry_checker_loop cancelled")
                raise
            except Exception:
                logger.exception("expiry_checker_loop error")

            await asyncio.sleep(CHECK_INTERVAL)
    except asyncio.CancelledError:
        pass


def _run_once() -> None:
    db = SessionLocal()
    try:
        expire_pending_appointments(db, datetime.now())
    finally:
        db.close()
