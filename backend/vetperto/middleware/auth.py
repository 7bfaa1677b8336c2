# Resolves who is calling and stores it on request.state:
#   client_type: public | tutor | professional | company | admin | internal
#   profile_id:  int for logged-in users, else None
# Scanners are blocked on public requests.

import hmac

from fastapi import Request
from starlette.responses import JSONResponse

from ..config import settings
from ..redis_client import get_redis
from ..services.accounts import resolve_session

_BLOCKED_UA = ("python-requests", "wget", "go-http-client", "scrapy", "sqlmap", "nikto")


def _deny(status: int = 403, detail: str = "Forbidden") -> JSONResponse:
    return JSONResponse(status_code=status, content={"detail": detail})


def bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization") or ""
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def auth_middleware(request: Request, call_next):
    path = request.url.path
    request.state.client_type = "public"
    request.state.profile_id = None

    # ===== Internal service / cron =====
    internal = request.headers.get("X-Internal-Token")
    if internal:
        expected = settings.internal_token
        if not expected or not hmac.compare_digest(internal, expected):
            return _deny(401, "Invalid internal token")
        request.state.client_type = "internal"
        return await call_next(request)

    # ===== Logged-in users =====
    token = bearer_token(request)
    if token:
        session = resolve_session(get_redis(), token)
        if session is None:
            return _deny(401, "Session expired")
        request.state.client_type = session["client_type"]
        request.state.profile_id = session["profile_id"]
        request.state.token = token
        return await call_next(request)

    # ===== Block scanners / bots on public requests =====
    if path.endswith(".php") or "/wp-" in path:
        return _deny()

    ua = (request.headers.get("User-Agent") or "").lower()
    if not ua or any(b in ua for b in _BLOCKED_UA):
        return _deny()

    return await call_next(request)
