from pydantic import BaseModel, Field

from calltracker.schemas.calls import Call, CallStatus, CamelModel, Workflow


class ProviderDispatch(BaseModel):
    provider_id: str
    response_delay_ms: int
    outcome: CallStatus


class SendCallRequest(CamelModel):
    call_id: str = Field(min_length=1)
    phone_number: str | None = None
    workflow: Workflow | None = None


class ProviderAcceptance(CamelModel):
    provider_id: str
    scheduled_in_ms: int


class ProviderStatusPayload(CamelModel):
    call_id: str = Field(min_length=1)
    provider_id: str | None = None
    status: CallStatus


class ProviderStatusResponse(CamelModel):
    ok: bool = True
    call: Call
    idempotent: bool = False
