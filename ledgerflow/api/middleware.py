"""Request middleware and exception handlers."""

import time
import uuid

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ledgerflow.core.exceptions import (
    ExternalServiceError,
    InvalidStateError,
    LedgerflowException,
    NotFoundException,
    unpack_validation_error,
)
from ledgerflow.core.logging import logger
from ledgerflow.domains.ledger.exceptions import InsufficientBalanceError


async def add_request_id(request: Request, call_next):
    """Attach a request id to the request state and the response headers."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


async def log_requests(request: Request, call_next):
    """Log method, path, status and duration of every request."""
    started = time.monotonic()
    response = await call_next(request)
    logger.with_context(request_id=getattr(request.state, "request_id", None)).info(
        f"{request.method} {request.url.path} -> {response.status_code} "
        f"({(time.monotonic() - started) * 1000:.1f}ms)"
    )
    return response


# Exception handlers


async def validation_exception_handler(
    request: Request, exc: RequestValidationError | ValidationError
) -> JSONResponse:
    """Return a 422 listing every invalid field."""
    error_messages = unpack_validation_error(exc)
    logger.warning(f"Validation error: {error_messages}")
    return JSONResponse(status_code=422, content=error_messages)


async def not_found_exception_handler(request: Request, exc: NotFoundException) -> JSONResponse:
    """Return a 404 with the error message."""
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def insufficient_balance_exception_handler(
    request: Request, exc: InsufficientBalanceError
) -> JSONResponse:
    """Return a 402 with the amount owed and the amount available."""
    return JSONResponse(
        status_code=402,
        content={
            "detail": str(exc),
            "organization_id": exc.organization_id,
            "required": exc.required,
            "available": exc.available,
        },
    )


async def invalid_state_exception_handler(request: Request, exc: InvalidStateError) -> JSONResponse:
    """Return a 409: the request conflicts with the current state."""
    return JSONResponse(status_code=409, content={"detail": str(exc)})


async def external_service_exception_handler(
    request: Request, exc: ExternalServiceError
) -> JSONResponse:
    """Return a 502 naming the failing dependency."""
    logger.error(f"External service error: {exc}")
    return JSONResponse(
        status_code=502, content={"detail": exc.message, "service": exc.service_name}
    )


async def ledgerflow_exception_handler(request: Request, exc: LedgerflowException) -> JSONResponse:
    """Fallback for domain exceptions without a dedicated handler."""
    logger.error(f"Unhandled domain error: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})
