"""Global error hierarchy and FastAPI exception handlers.

All bassball-specific errors extend BassballError. The managers raise these
directly; the FastAPI exception handlers catch them (plus Pydantic's
RequestValidationError and unhandled exceptions) and return a consistent JSON
envelope: { success, data, error, meta }.
"""

from __future__ import annotations

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Error hierarchy
# ---------------------------------------------------------------------------


class BassballError(Exception):
    """Base error for all bassball-specific errors."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, **kwargs: object) -> None:
        self.message = message or self.__class__.message
        self.details = kwargs
        super().__init__(self.message)


class ValidationError(BassballError):
    """Invalid arguments, with field-level details when available."""

    status_code = 422
    message = "Validation error"


class AuthenticationError(BassballError):
    """Invalid or missing service key."""

    status_code = 401
    message = "Invalid or missing service key"


class PermissionDeniedError(BassballError):
    """Actor is not allowed to perform the action."""

    status_code = 403
    message = "Permission denied"


class NotFoundError(BassballError):
    """Requested entity does not exist."""

    status_code = 404
    message = "Not found"


class EndpointNotFoundError(NotFoundError):
    message = "RPC endpoint not found"


class SeasonNotFoundError(NotFoundError):
    message = "Season not found"


class PlayerNotEnrolledError(NotFoundError):
    message = "Player is not enrolled in the battle pass"


class ClubNotFoundError(NotFoundError):
    message = "Club not found"


class InviteNotFoundError(NotFoundError):
    message = "Club invite not found"


class OrderNotFoundError(NotFoundError):
    message = "Order not found"


class PricingNotFoundError(NotFoundError):
    message = "No merchandise pricing configured for team"


class MechanicNotFoundError(NotFoundError):
    message = "Burn or sink mechanic not found"


class SinkNotFoundError(NotFoundError):
    message = "Sink record not found"


class NFTNotFoundError(NotFoundError):
    message = "Seasonal ranking NFT not found"


class SnapshotNotFoundError(NotFoundError):
    message = "Season snapshot not found"


class ConflictError(BassballError):
    """Entity already exists or the action was already performed."""

    status_code = 409
    message = "Conflict"


class InvalidStateError(BassballError):
    """Action is not allowed in the entity's current lifecycle state."""

    status_code = 409
    message = "Invalid state transition"


class InsufficientFundsError(BassballError):
    """Balance too low for the requested withdrawal."""

    status_code = 409
    message = "Insufficient funds"


class LimitExceededError(BassballError):
    """A daily, capacity or level limit would be exceeded."""

    status_code = 429
    message = "Limit exceeded"


class NoActiveEndpointError(BassballError):
    """No RPC endpoint is configured."""

    status_code = 503
    message = "No RPC endpoint available"


class RpcRequestError(BassballError):
    """JSON-RPC call failed after retries or returned an error object."""

    status_code = 502
    message = "RPC request failed"


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------


def _envelope(
    status_code: int,
    error: str,
    meta: dict | None = None,
) -> JSONResponse:
    """Build a JSON envelope error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "data": None,
            "error": error,
            "meta": meta,
        },
    )


async def _bassball_error_handler(_request: Request, exc: BassballError) -> JSONResponse:
    """Handle BassballError subclasses."""
    meta = exc.details if exc.details else None
    return _envelope(exc.status_code, exc.message, meta=meta)


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle FastAPI / Pydantic RequestValidationError (422)."""
    field_errors = [
        {
            "field": " -> ".join(str(loc) for loc in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    return _envelope(
        status_code=422,
        error="Validation error",
        meta={"fields": field_errors},
    )


async def _unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions: log the traceback and return a generic 500."""
    logger.error(
        "Unhandled exception: %s\n%s",
        exc,
        traceback.format_exc(),
    )
    return _envelope(status_code=500, error="Internal server error")


# ---------------------------------------------------------------------------
# Registration helper
# ---------------------------------------------------------------------------


def register_error_handlers(app: FastAPI) -> None:
    """Wire up all exception handlers on the FastAPI application."""
    app.add_exception_handler(BassballError, _bassball_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)  # type: ignore[arg-type]
