"""Map the core exception taxonomy onto HTTP responses.

Every rejection body is ``{"kind": <stable machine-readable kind>, "message":
<human-readable text>}``. No stack traces or internals reach the client.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ratedesk.exceptions import (
    AccountNotFoundError,
    AllProvidersUnavailableError,
    InsufficientBalanceError,
    InvalidAmountError,
    RateDeskError,
    RateUnavailableError,
    UnauthorizedError,
)
from ratedesk.logging import get_logger

logger = get_logger(__name__)

INVALID_REQUEST_KIND = "invalid_request"

# Request fields carrying money or prices; validation failures on them are amount errors.
_AMOUNT_FIELDS = frozenset(
    {
        "primary_amount",
        "secondary_amount",
        "primary_balance",
        "secondary_balance",
        "price",
        "change_24h",
        "high_24h",
        "low_24h",
        "volume_24h",
    }
)

_STATUS_BY_TYPE: dict[type[RateDeskError], int] = {
    InvalidAmountError: 400,
    InsufficientBalanceError: 400,
    AccountNotFoundError: 404,
    AllProvidersUnavailableError: 503,
    RateUnavailableError: 503,
}


def _error_response(status_code: int, kind: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"kind": kind, "message": message})


def status_for(exc: RateDeskError) -> int:
    """HTTP status for a core exception."""
    if isinstance(exc, UnauthorizedError):
        return 403 if exc.authenticated else 401
    for exc_type, status in _STATUS_BY_TYPE.items():
        if isinstance(exc, exc_type):
            return status
    return 500


def register_error_handlers(app: FastAPI) -> None:
    """Install the handlers on ``app``."""

    @app.exception_handler(RateDeskError)
    async def handle_core_error(request: Request, exc: RateDeskError) -> JSONResponse:
        status = status_for(exc)
        log = logger.error if status >= 500 else logger.warning
        log("request_rejected", path=request.url.path, kind=exc.kind, status=status, reason=exc.message)
        return _error_response(status, exc.kind, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        loc = [str(part) for part in first.get("loc", ()) if part != "body"]
        field = ".".join(loc)
        message = f"{field}: {first.get('msg', 'invalid value')}" if field else "Invalid request body"
        kind = InvalidAmountError.kind if loc and loc[0] in _AMOUNT_FIELDS else INVALID_REQUEST_KIND
        logger.warning("request_invalid", path=request.url.path, kind=kind, error=message)
        return _error_response(422, kind, message)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("request_failed_unexpectedly", path=request.url.path, error_type=type(exc).__name__)
        return _error_response(500, RateDeskError.kind, "Internal server error")
