"""Main module of the FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from ledgerflow.api.middleware import (
    add_request_id,
    external_service_exception_handler,
    insufficient_balance_exception_handler,
    invalid_state_exception_handler,
    ledgerflow_exception_handler,
    log_requests,
    not_found_exception_handler,
    validation_exception_handler,
)
from ledgerflow.api.v1.api import api_router
from ledgerflow.core.config import settings
from ledgerflow.core.exceptions import (
    ExternalServiceError,
    InvalidStateError,
    LedgerflowException,
    NotFoundException,
)
from ledgerflow.core.logging import logger
from ledgerflow.domains.ledger.exceptions import InsufficientBalanceError


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the container and the metrics server; tear both down on exit."""
    from ledgerflow.core import container as container_mod
    from ledgerflow.core.container import initialize_container
    from ledgerflow.core.redis_client import redis_client
    from ledgerflow.platform.control_server import ControlServer, ProcessState

    logger.info("Initializing dependency injection container...")
    initialize_container(settings)

    control_server = ControlServer(
        state=ProcessState(running=True),
        renderer=container_mod.container.renderer,
        port=settings.METRICS_PORT,
    )
    try:
        await control_server.start()
    except Exception as e:
        logger.warning(f"Failed to start metrics server: {e}")

    yield

    await control_server.stop()
    await redis_client.close()


app = FastAPI(title="ledgerflow", openapi_url="/openapi.json", lifespan=lifespan)

app.include_router(api_router)

app.middleware("http")(log_requests)
app.middleware("http")(add_request_id)

app.exception_handler(RequestValidationError)(validation_exception_handler)
app.exception_handler(ValidationError)(validation_exception_handler)
app.exception_handler(NotFoundException)(not_found_exception_handler)
app.exception_handler(InsufficientBalanceError)(insufficient_balance_exception_handler)
app.exception_handler(InvalidStateError)(invalid_state_exception_handler)
app.exception_handler(ExternalServiceError)(external_service_exception_handler)
app.exception_handler(LedgerflowException)(ledgerflow_exception_handler)
