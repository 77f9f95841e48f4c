import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from calltracker.config import MAX_LIST_LIMIT
from calltracker.dependencies import (
    CallbackHandlerDep,
    CallStoreDep,
    OrchestratorDep,
    SettingsDep,
    require_token,
)
from calltracker.exceptions.custom import StoreUnavailableError
from calltracker.schemas.calls import (
    CallEnvelope,
    CallListResponse,
    ClearCallsResponse,
    StatusUpdateResponse,
    UpdateStatusRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/calls", dependencies=[Depends(require_token)])


@router.get("", response_model=CallListResponse)
async def list_calls(store: CallStoreDep, settings: SettingsDep) -> CallListResponse:
    try:
        calls = await store.list_recent(min(settings.list_limit, MAX_LIST_LIMIT))
    except StoreUnavailableError as exc:
        # Read endpoint degrades to an empty list, flagged with 503
        logger.error("Listing calls failed: %s", exc.message)
        return JSONResponse(
            status_code=503,
            content={"calls": [], "detail": "Call store unavailable"},
        )
    return CallListResponse(calls=calls)


@router.post("", response_model=CallEnvelope, status_code=201)
async def create_call(
    orchestrator: OrchestratorDep,
    payload: Annotated[dict[str, Any] | None, Body()] = None,
) -> CallEnvelope:
    payload = payload or {}
    call = await orchestrator.submit(
        payload.get("customerName"),
        payload.get("phoneNumber"),
        payload.get("workflow"),
        payload.get("scheduledAt"),
    )
    return CallEnvelope(call=call)


@router.delete("", response_model=ClearCallsResponse)
async def clear_calls(store: CallStoreDep) -> ClearCallsResponse:
    deleted = await store.delete_all()
    logger.info("Cleared %d call(s)", deleted)
    return ClearCallsResponse(success=True, deleted=deleted)


@router.patch("/{call_id}", response_model=StatusUpdateResponse)
async def update_status(
    call_id: str,
    request: UpdateStatusRequest,
    callbacks: CallbackHandlerDep,
) -> StatusUpdateResponse:
    result = await callbacks.apply_outcome(call_id, None, request.status)
    return StatusUpdateResponse(call=result.call, idempotent=result.idempotent)
