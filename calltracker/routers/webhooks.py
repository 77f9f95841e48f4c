from fastapi import APIRouter

from calltracker.dependencies import CallbackHandlerDep
from calltracker.schemas.provider import ProviderStatusPayload, ProviderStatusResponse

# Called by the provider, which holds no API token
router = APIRouter(prefix="/api/webhooks")


@router.post("/provider-status", response_model=ProviderStatusResponse)
async def provider_status(
    payload: ProviderStatusPayload,
    callbacks: CallbackHandlerDep,
) -> ProviderStatusResponse:
    result = await callbacks.apply_outcome(payload.call_id, payload.provider_id, payload.status)
    return ProviderStatusResponse(ok=True, call=result.call, idempotent=result.idempotent)
