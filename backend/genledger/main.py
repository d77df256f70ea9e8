"""Main module of the FastAPI application.

This module sets up the FastAPI application, the middleware to log incoming
requests and unhandled exceptions, and the background reservation sweeper.
"""

import os
import subprocess
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from genledger.api.middleware import (
    add_request_id,
    exception_logging_middleware,
    external_service_exception_handler,
    genledger_exception_handler,
    invalid_state_exception_handler,
    log_requests,
    not_found_exception_handler,
    payment_required_exception_handler,
    rate_limit_exception_handler,
    validation_exception_handler,
)
from genledger.api.v1.api import api_router
from genledger.core.config import settings
from genledger.core.exceptions import (
    ExternalServiceError,
    GenledgerException,
    InvalidStateError,
    NotFoundException,
    PaymentRequiredException,
    RateLimitExceededException,
)
from genledger.core.logging import logger


def _run_migrations() -> None:
    logger.info("Running alembic migrations...")
    env = os.environ.copy()
    backend_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    env["PYTHONPATH"] = backend_dir
    subprocess.run(
        [sys.executable, "-m", "alembic", "upgrade", "head"],
        check=True,
        cwd=backend_dir,
        env=env,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events.

    Initializes the DI container, runs alembic migrations and starts the
    reservation sweeper; stops the sweeper (after a final pass) on shutdown.
    """
    from genledger.core import container as container_mod
    from genledger.core.container import initialize_container

    logger.info("Initializing dependency injection container...")
    initialize_container(settings)
    logger.info("Container initialized successfully")

    if settings.RUN_ALEMBIC_MIGRATIONS:
        _run_migrations()

    sweeper = container_mod.container.reservation_sweeper
    if settings.RESERVATION_SWEEP_ENABLED:
        sweeper.start()

    yield

    await sweeper.stop()


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.include_router(api_router)

# Order matters: first registered = outermost middleware (processes request first)
app.middleware("http")(add_request_id)
app.middleware("http")(log_requests)
app.middleware("http")(exception_logging_middleware)

# Register exception handlers
app.exception_handler(RequestValidationError)(validation_exception_handler)
app.exception_handler(ValidationError)(validation_exception_handler)
app.exception_handler(NotFoundException)(not_found_exception_handler)
app.exception_handler(PaymentRequiredException)(payment_required_exception_handler)
app.exception_handler(RateLimitExceededException)(rate_limit_exception_handler)
app.exception_handler(InvalidStateError)(invalid_state_exception_handler)
app.exception_handler(ExternalServiceError)(external_service_exception_handler)
app.exception_handler(GenledgerException)(genledger_exception_handler)
