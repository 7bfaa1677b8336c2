"""
Fixed-window rate limiting on Redis counters.

Public traffic is counted per IP and per User-Agent hash, logged-in
traffic per session token hash. Confirmation links (POST /confirmations/*)
have their own tight per-IP window for every client type. Internal calls
are never limited. When Redis is unreachable requests are let through.
"""

import logging
from typing import NamedTuple, Optional

from fastapi import Request
from starlette.responses import JSONResponse

from ..redis_client import get_redis
from ..utils.hashing import hash_token, hash_ua

logger = logging.getLogger(__name__)


class Limit(NamedTuple):
    requests: int  # 0 disables the limit
    window: int  # seconds


PUBLIC_LIMITS = {
    "ip": Limit(60, 60),
    "ua": Limit(120, 60),
}

TOKEN_LIMITS = {
    "tutor": Limit(300, 60),
    "professional": Limit(300, 60),
    "company": Limit(300, 60),
    "admin": Limit(600, 60),
}

CONFIRMATION_LIMIT = Limit(5, 60)
CONFIRMATION_PREFIX = "/confirmations/"


def hit(key: str, limit: Limit) -> Optional[int]:
    """Count one request against key. Seconds to wait when over the limit, else None."""
    if limit.requests <= 0:
        return None

    redis = get_redis()
    try:
        pipe = redis.pipeline()
        pipe.incr(key)
        pipe.ttl(key)
        count, ttl = pipe.execute()
        if ttl < 0:
            # first hit of the window (or a key that lost its TTL)
            redis.expire(key, limit.window)
            ttl = limit.window
    except Exception as e:
        logger.error(f"Rate limit check skipped for {key}: {e}")
        return None

    return ttl if count > limit.requests else None


def client_ip(request: Request) -> str:
    return request.headers.get("X-Real-IP") or (request.client.host if request.client else "unknown")


def _keys_for(request: Request, client_type: str) -> list[tuple[str, Limit]]:
    keys = []
    ip = client_ip(request)

    if request.method == "POST" and request.url.path.startswith(CONFIRMATION_PREFIX):
        keys.append((f"rl:confirm:ip:{ip}", CONFIRMATION_LIMIT))

    if client_type == "public":
        keys.append((f"rl:public:ip:{ip}", PUBLIC_LIMITS["ip"]))
        keys.append((f"rl:public:ua:{hash_ua(request.headers.get('User-Agent', ''))}", PUBLIC_LIMITS["ua"]))
    else:
        token = getattr(request.state, "token", None)
        limit = TOKEN_LIMITS.get(client_type)
        if token and limit:
            keys.append((f"rl:{client_type}:token:{hash_token(token)}", limit))

    return keys


async def rate_limit_middleware(request: Request, call_next):
    client_type = getattr(request.state, "client_type", None) or "public"
    if client_type == "internal":
        return await call_next(request)

    for key, limit in _keys_for(request, client_type):
        retry_after = hit(key, limit)
        if retry_after is not None:
            logger.warning(f"Rate limited: {key.rsplit(':', 1)[0]} {request.method} {request.url.path}")
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded"},
                headers={"Retry-After": str(max(retry_after, 1))},
            )

    return await call_next(request)
