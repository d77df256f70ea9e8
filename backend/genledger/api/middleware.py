"""Middleware for the FastAPI application.

This module contains middleware that process requests and responses, and the
exception handlers that map domain errors to HTTP status codes.
"""

import time
import traceback
import uuid

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from genledger.core.config import settings
from genledger.core.exceptions import (
    ExternalServiceError,
    GenledgerException,
    InvalidStateError,
    NotFoundException,
    PaymentRequiredException,
    RateLimitExceededException,
    unpack_validation_error,
)
from genledger.core.logging import logger

UPGRADE_PATH = "/pricing"


async def add_request_id(request: Request, call_next: callable) -> Response:
    """Middleware to generate and add a request ID to the request for tracing.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    request.state.request_id = str(uuid.uuid4())
    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    return response


async def log_requests(request: Request, call_next: callable) -> Response:
    """Middleware to log incoming requests."""
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time
    logger.info(
        f"Handled request {request.method} {request.url.path} in {duration:.2f} seconds. "
        f"Response code: {response.status_code}"
    )
    return response


async def exception_logging_middleware(request: Request, call_next: callable) -> Response:
    """Middleware to log unhandled exceptions.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    try:
        response = await call_next(request)
        return response
    except Exception as exc:
        logger.error(f"Unhandled exception: {exc}\n{traceback.format_exc()}")

        error_message = f"Internal Server Error: {exc.__class__.__name__}: {str(exc)}"
        response_content = {"detail": error_message}

        # Include stack trace only in development mode
        if settings.DEBUG:
            response_content["trace"] = traceback.format_exc()

        return JSONResponse(status_code=500, content=response_content)


# Exception handlers
async def validation_exception_handler(
    request: Request, exc: RequestValidationError | ValidationError
) -> JSONResponse:
    """Exception handler for validation errors that occur during request processing.

    Returns:
    -------
        JSONResponse: A 422 Unprocessable Entity status response with one
            ``{location: message}`` entry per validation error.

    """
    error_messages = unpack_validation_error(exc)
    logger.error(f"Validation error: {error_messages}")
    return JSONResponse(status_code=422, content=error_messages)


async def not_found_exception_handler(request: Request, exc: NotFoundException) -> JSONResponse:
    """Exception handler for NotFoundException."""
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def payment_required_exception_handler(
    request: Request, exc: PaymentRequiredException
) -> JSONResponse:
    """Exception handler for PaymentRequiredException.

    The body points the client at the pricing page so it can offer an upgrade.
    """
    return JSONResponse(
        status_code=402,
        content={
            "detail": str(exc),
            "upgrade_url": f"{settings.FRONTEND_URL.rstrip('/')}{UPGRADE_PATH}",
        },
    )


async def rate_limit_exception_handler(
    request: Request, exc: RateLimitExceededException
) -> JSONResponse:
    """Exception handler for RateLimitExceededException.

    Returns:
    -------
        JSONResponse: A 429 Too Many Requests status response with rate limit headers.

    """
    reset_timestamp = int(time.time() + exc.retry_after)

    return JSONResponse(
        status_code=429,
        content={"detail": str(exc)},
        headers={
            "Retry-After": str(int(exc.retry_after)),
            "RateLimit-Limit": str(exc.limit),
            "RateLimit-Remaining": str(exc.remaining),
            "RateLimit-Reset": str(reset_timestamp),
        },
    )


async def invalid_state_exception_handler(request: Request, exc: InvalidStateError) -> JSONResponse:
    """Exception handler for InvalidStateError (400)."""
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def external_service_exception_handler(
    request: Request, exc: ExternalServiceError
) -> JSONResponse:
    """Exception handler for ExternalServiceError (502)."""
    logger.error(f"External service failure: {exc}")
    return JSONResponse(status_code=502, content={"detail": str(exc)})


async def genledger_exception_handler(request: Request, exc: GenledgerException) -> JSONResponse:
    """Generic exception handler for GenledgerException types without a dedicated handler."""
    return JSONResponse(status_code=500, content={"detail": str(exc)})
