# agenda/core/errors.py
"""
Typed errors raised by the scheduling core.

Every error carries a stable ``code`` (what API callers switch on), a human
readable message and the HTTP status the API layer answers with.
"""
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SchedulingError(Exception):
    """Base class for all errors that cross the core boundary."""
    code = "SchedulingError"
    status_code = 400

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)

    def to_dict(self):
        return {"code": self.code, "message": self.message}


# ---------------------------------------------------------------------------
# Malformed input, rejected before touching storage
# ---------------------------------------------------------------------------

class ValidationError(SchedulingError):
    """Request is malformed."""
    code = "ValidationError"
    status_code = 422


class InvalidGuestInfo(ValidationError):
    """Provide either a registered client id or guest name, email and phone."""
    code = "InvalidGuestInfo"


# ---------------------------------------------------------------------------
# Business policy, rejected after a cheap check
# ---------------------------------------------------------------------------

class PolicyViolation(SchedulingError):
    code = "PolicyViolation"
    status_code = 400


class ServiceInactive(PolicyViolation):
    """Service is not offered."""
    code = "ServiceInactive"


class EmployeeInactive(PolicyViolation):
    """Employee is not available for this service."""
    code = "EmployeeInactive"


class OutsideBookingWindow(PolicyViolation):
    """Date is outside the business booking window."""
    code = "OutsideBookingWindow"


class OutsideBusinessHours(PolicyViolation):
    """Requested time is outside business hours."""
    code = "OutsideBusinessHours"


class DepositRequired(PolicyViolation):
    """A deposit must be collected before confirming."""
    code = "DepositRequired"


class EmployeeBusy(PolicyViolation):
    """Employee is attending a client."""
    code = "EmployeeBusy"


# ---------------------------------------------------------------------------
# Lost races, retryable by the caller
# ---------------------------------------------------------------------------

class ConflictError(SchedulingError):
    code = "Conflict"
    status_code = 409


class SlotNoLongerAvailable(ConflictError):
    """The selected time is no longer available, please choose another slot."""
    code = "SlotNoLongerAvailable"


class InvalidTransition(SchedulingError):
    """Status change not allowed."""
    code = "InvalidTransition"
    status_code = 409

    def __init__(self, current: str, target: str, message: Optional[str] = None):
        self.current = current
        self.target = target
        super().__init__(message or f"Cannot move appointment from {current} to {target}")


class NotFound(SchedulingError):
    """Resource not found."""
    code = "NotFound"
    status_code = 404


class StorageError(SchedulingError):
    """Storage is unavailable, try again later."""
    code = "StorageError"
    status_code = 503


# ---------------------------------------------------------------------------
# FastAPI wiring
# ---------------------------------------------------------------------------

def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": {"code": code, "message": message}},
    )


async def scheduling_error_handler(request: Request, exc: SchedulingError):
    if isinstance(exc, StorageError):
        logger.error(f"Storage failure on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.url.path}: {exc.message}")
    return _error_response(exc.status_code, exc.code, exc.message)


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return _error_response(422, ValidationError.code, details or "Invalid request")


def register_error_handlers(app: FastAPI):
    """Convert core errors into the API error envelope"""
    app.add_exception_handler(SchedulingError, scheduling_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
