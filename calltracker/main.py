import logging
import sys
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from calltracker.config import Settings
from calltracker.database import open_call_store
from calltracker.exceptions.custom import (
    CallAlreadyDispatchedError,
    CallNotFoundError,
    CallValidationError,
    InvalidTransitionError,
    ProviderMismatchError,
    StoreUnavailableError,
    UnauthorizedError,
)
from calltracker.exceptions.handlers import (
    already_dispatched_error_handler,
    call_not_found_error_handler,
    call_validation_error_handler,
    invalid_transition_error_handler,
    provider_mismatch_error_handler,
    request_validation_error_handler,
    store_unavailable_error_handler,
    unauthorized_error_handler,
)
from calltracker.routers.calls import router as calls_router
from calltracker.routers.provider import router as provider_router
from calltracker.routers.webhooks import router as webhooks_router
from calltracker.scheduler import TaskScheduler
from calltracker.services.callbacks import StatusCallbackHandler
from calltracker.services.orchestrator import CallOrchestrator
from calltracker.services.provider import ProviderSimulator
from calltracker.services.transport import HttpProviderTransport, ProviderTransport

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    if not settings.api_token:
        logger.warning("API_TOKEN not set, authentication is disabled")

    store = await open_call_store(settings.database_url)
    scheduler = TaskScheduler()
    simulator = ProviderSimulator(
        settings.provider_delay_ms_min,
        settings.provider_delay_ms_max,
        settings.provider_fail_rate,
    )
    callbacks = StatusCallbackHandler(store)

    async with httpx.AsyncClient(timeout=10.0) as client:
        # None gives the orchestrator its in-process LocalProviderTransport
        transport: ProviderTransport | None = None
        if settings.provider_transport == "http":
            transport = HttpProviderTransport(client, settings.app_url, settings.api_token)

        app.state.settings = settings
        app.state.call_store = store
        app.state.scheduler = scheduler
        app.state.callback_handler = callbacks
        app.state.orchestrator = CallOrchestrator(
            store, scheduler, simulator, callbacks, transport=transport,
        )

        try:
            yield
        finally:
            await scheduler.aclose()
            await store.close()


app = FastAPI(title="Call Tracker", lifespan=lifespan)

app.add_exception_handler(CallValidationError, call_validation_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_error_handler)
app.add_exception_handler(InvalidTransitionError, invalid_transition_error_handler)
app.add_exception_handler(CallNotFoundError, call_not_found_error_handler)
app.add_exception_handler(UnauthorizedError, unauthorized_error_handler)
app.add_exception_handler(CallAlreadyDispatchedError, already_dispatched_error_handler)
app.add_exception_handler(ProviderMismatchError, provider_mismatch_error_handler)
app.add_exception_handler(StoreUnavailableError, store_unavailable_error_handler)

app.include_router(calls_router)
app.include_router(provider_router)
app.include_router(webhooks_router)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
