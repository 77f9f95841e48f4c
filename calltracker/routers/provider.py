"""Simulated telephony provider endpoint.

Stands in for a third-party system; it lives in this service for the demo.
"""

from fastapi import APIRouter, Depends

from calltracker.dependencies import OrchestratorDep, require_token
from calltracker.schemas.provider import ProviderAcceptance, SendCallRequest

router = APIRouter(prefix="/api/provider", dependencies=[Depends(require_token)])


@router.post("/send-call", response_model=ProviderAcceptance)
async def send_call(
    request: SendCallRequest,
    orchestrator: OrchestratorDep,
) -> ProviderAcceptance:
    return await orchestrator.accept_dispatch(request.call_id)
