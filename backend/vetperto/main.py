# backend/vetperto/main.py

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import settings
from .errors import DomainError, domain_error_handler
from .middleware.access_policy import access_policy_middleware
from .middleware.audit import audit_middleware
from .middleware.auth import auth_middleware
from .middleware.rate_limit import rate_limit_middleware
from .redis_client import get_redis
from .routers import (
    admin,
    appointments,
    auth,
    booking,
    catalog,
    confirmations,
    favorites,
    internal,
    me,
    notifications,
    pets,
    plans,
    professionals,
    reviews,
    search,
    slots,
)
from .services.confirmation_checker import confirmation_checker_loop
from .services.delivery.consumer import p2p_consumer_loop, retry_consumer_loop
from .services.expiry_checker import expiry_checker_loop
from .services.reminder_checker import reminder_checker_loop

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    tasks = []
    if settings.run_background_tasks:
        tasks = [
            asyncio.create_task(reminder_checker_loop()),
            asyncio.create_task(confirmation_checker_loop()),
            asyncio.create_task(expiry_checker_loop()),
            asyncio.create_task(p2p_consumer_loop(settings.redis_url)),
            asyncio.create_task(retry_consumer_loop(settings.redis_url)),
        ]
        logger.info(f"Background tasks started: {len(tasks)}")

    yield

    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


app = FastAPI(title="VetPerto API", lifespan=lifespan)

app.add_exception_handler(DomainError, domain_error_handler)

# ===== Middleware order =====
app.middleware("http")(audit_middleware)
app.middleware("http")(access_policy_middleware)
app.middleware("http")(rate_limit_middleware)
app.middleware("http")(auth_middleware)

for module in (
    auth,
    professionals,
    search,
    plans,
    catalog,
    me,
    booking,
    appointments,
    confirmations,
    notifications,
    reviews,
    pets,
    favorites,
    admin,
    slots,
    internal,
):
    app.include_router(module.router)


@app.get("/health")
def health():
    try:
        redis_ok = bool(get_redis().ping())
    except Exception as e:
        logger.warning(f"Health check: redis unavailable: {e}")
        redis_ok = False
    return {"status": "ok" if redis_ok else "degraded", "redis": redis_ok}
