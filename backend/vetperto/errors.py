# backend/vetperto/errors.py
"""
Domain errors raised by the service layer.

Routers let them propagate; the handler registered in main.py renders
them as {"detail": ..., "code": ...} with the class status code.
"""

from fastapi import Request
from starlette.responses import JSONResponse


class DomainError(Exception):
    status_code = 400
    code = "domain_error"

    def __init__(self, message: str | None = None, code: str | None = None):
        self.message = message or self.__class__.__name__
        if code:
            self.code = code
        super().__init__(self.message)


class NotFound(DomainError):
    status_code = 404
    code = "not_found"


class PermissionDenied(DomainError):
    status_code = 403
    code = "forbidden"


class ValidationFailed(DomainError):
    status_code = 422
    code = "validation_failed"


class Conflict(DomainError):
    status_code = 409
    code = "conflict"


class SlotUnavailable(Conflict):
    code = "SLOT_UNAVAILABLE"


class NoCreditsAvailable(DomainError):
    status_code = 402
    code = "NO_CREDITS_AVAILABLE"


class PlanLimitReached(DomainError):
    status_code = 402
    code = "PLAN_LIMIT_REACHED"


class ProfessionalInactive(DomainError):
    status_code = 409
    code = "PROFESSIONAL_INACTIVE"


class WizardError(DomainError):
    status_code = 409
    code = "wizard_state"


class TokenExpired(DomainError):
    status_code = 410
    code = "token_expired"


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )
