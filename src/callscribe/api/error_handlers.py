"""
FastAPI exception handlers for structured error responses.

Maps domain exceptions to appropriate HTTP status codes and formats.
Facade operations report failures in envelopes, so these handlers only
see errors raised by direct provider calls or by the framework itself.
"""

import logging
from datetime import datetime

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from callscribe.clients.exceptions import ProviderError, ProviderTimeoutError
from callscribe.resilience.exceptions import CircuitOpenError, ResilienceError

logger = logging.getLogger(__name__)


async def provider_error_handler(request: Request, exc: ProviderError) -> JSONResponse:
    """
    Handle voice/transcription provider errors.

    Maps to 502 Bad Gateway (upstream service failed).

    Args:
        request: FastAPI request
        exc: ProviderError instance

    Returns:
        JSON error response
    """
    logger.error(
        "Provider error",
        extra={
            "provider": exc.provider,
            "method": exc.method,
            "status_code": exc.status_code,
            "error": str(exc),
        },
    )

    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={
            "error": "provider_error",
            "message": str(exc),
            "provider": exc.provider,
            "timestamp": datetime.utcnow().isoformat(),
        },
    )


async def provider_timeout_handler(request: Request, exc: ProviderTimeoutError) -> JSONResponse:
    """Handle provider timeouts. Maps to 504 Gateway Timeout."""
    logger.error(
        "Provider timeout",
        extra={"provider": exc.provider, "method": exc.method, "error": str(exc)},
    )

    return JSONResponse(
        status_code=status.HTTP_504_GATEWAY_TIMEOUT,
        content={
            "error": "provider_timeout",
            "message": str(exc),
            "provider": exc.provider,
            "timestamp": datetime.utcnow().isoformat(),
        },
    )


async def resilience_error_handler(request: Request, exc: ResilienceError) -> JSONResponse:
    """
    Handle resilience errors raised outside a facade.

    Maps an open breaker to 503 Service Unavailable, anything else to 502.
    """
    is_open = isinstance(exc, CircuitOpenError)
    logger.warning(
        "Resilience error",
        extra={"error_type": type(exc).__name__, "details": exc.details},
    )

    return JSONResponse(
        status_code=(
            status.HTTP_503_SERVICE_UNAVAILABLE if is_open else status.HTTP_502_BAD_GATEWAY
        ),
        content={
            "error": "circuit_open" if is_open else "upstream_unavailable",
            "message": str(exc),
            "details": exc.details,
            "timestamp": datetime.utcnow().isoformat(),
        },
    )


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle invalid request bodies and query parameters.

    Maps to 400 Bad Request (client error).
    """
    logger.warning(
        "Invalid request format",
        extra={"errors": exc.errors()},
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "invalid_request",
            "message": "Request validation failed",
            "details": jsonable_errors(exc.errors()),
            "timestamp": datetime.utcnow().isoformat(),
        },
    )


async def pydantic_validation_error_handler(
    request: Request, exc: PydanticValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors (malformed provider payloads).

    Maps to 400 Bad Request (client error).
    """
    logger.warning(
        "Invalid request format",
        extra={"errors": exc.errors()},
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "invalid_request",
            "message": "Request validation failed",
            "details": jsonable_errors(exc.errors()),
            "timestamp": datetime.utcnow().isoformat(),
        },
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected errors.

    Maps to 500 Internal Server Error.
    """
    logger.exception(
        "Unexpected error",
        extra={"error_type": type(exc).__name__},
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "timestamp": datetime.utcnow().isoformat(),
        },
    )


def jsonable_errors(errors: list) -> list[dict]:
    """Keep only the JSON-safe parts of pydantic error entries."""
    return [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
        for e in errors
    ]


# Exception handler mapping for FastAPI app.add_exception_handler()
EXCEPTION_HANDLERS = {
    ProviderTimeoutError: provider_timeout_handler,
    ProviderError: provider_error_handler,
    ResilienceError: resilience_error_handler,
    RequestValidationError: request_validation_error_handler,
    PydanticValidationError: pydantic_validation_error_handler,
    Exception: generic_error_handler,
}
