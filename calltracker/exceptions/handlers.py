import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from calltracker.lifecycle import field_errors

from .custom import (
    CallAlreadyDispatchedError,
    CallNotFoundError,
    CallValidationError,
    InvalidTransitionError,
    ProviderMismatchError,
    StoreUnavailableError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)


async def call_validation_error_handler(_request: Request, exc: CallValidationError) -> JSONResponse:
    logger.info("Rejected call input: %s", ", ".join(sorted(exc.errors)))
    return JSONResponse(
        status_code=400,
        content={"detail": exc.message, "errors": exc.errors},
    )


async def request_validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = field_errors(exc.errors())
    logger.info("Rejected request body: %s", ", ".join(sorted(errors)))
    return JSONResponse(
        status_code=400,
        content={"detail": "Invalid input", "errors": errors},
    )


async def invalid_transition_error_handler(
    _request: Request, exc: InvalidTransitionError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"detail": exc.message, "errors": {"status": [exc.message]}},
    )


async def call_not_found_error_handler(_request: Request, exc: CallNotFoundError) -> JSONResponse:
    logger.info("Call not found: %s", exc.call_id)
    return JSONResponse(status_code=404, content={"detail": exc.message})


async def unauthorized_error_handler(_request: Request, exc: UnauthorizedError) -> JSONResponse:
    logger.warning("Unauthorized request")
    return JSONResponse(
        status_code=401,
        content={"detail": exc.message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def already_dispatched_error_handler(
    _request: Request, exc: CallAlreadyDispatchedError
) -> JSONResponse:
    logger.warning("Re-dispatch refused for call %s", exc.call_id)
    return JSONResponse(
        status_code=409,
        content={"detail": exc.message, "providerId": exc.provider_id},
    )


async def provider_mismatch_error_handler(
    _request: Request, exc: ProviderMismatchError
) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": exc.message})


async def store_unavailable_error_handler(
    _request: Request, exc: StoreUnavailableError
) -> JSONResponse:
    logger.error("Call store unavailable: %s", exc.message)
    return JSONResponse(
        status_code=503,
        content={"detail": "Call store unavailable"},
    )
