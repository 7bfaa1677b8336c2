# Access log: one JSON object per request on the "vetperto.audit" logger.
# Innermost middleware: only requests that passed auth, rate limit and policy reach it.

import json
import logging
import time

from fastapi import Request

from .rate_limit import client_ip

logger = logging.getLogger("vetperto.audit")

QUIET_PATHS = {"/health"}


async def audit_middleware(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = round((time.perf_counter() - started) * 1000, 1)

    path = request.url.path
    if path in QUIET_PATHS and response.status_code < 400:
        return response

    level = logging.WARNING if response.status_code >= 500 else logging.INFO
    logger.log(level, json.dumps({
        "method": request.method,
        "path": path,
        "status": response.status_code,
        "client": getattr(request.state, "client_type", None),
        "profile_id": getattr(request.state, "profile_id", None),
        "ip": client_ip(request),
        "ua": request.headers.get("User-Agent", "")[:200],
        "ms": elapsed_ms,
    }, ensure_ascii=False))

    return response
