from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

PHONE_NUMBER_PATTERN = r"^[0-9+()\-\s]+$"


class Workflow(StrEnum):
    SUPPORT = "SUPPORT"
    SALES = "SALES"
    REMINDER = "REMINDER"


class CallStatus(StrEnum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class CamelModel(BaseModel):
    """Base for models exchanged as JSON with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Call(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    customer_name: str
    phone_number: str
    workflow: Workflow
    status: CallStatus = CallStatus.PENDING
    provider_id: str | None = None
    scheduled_at: datetime | None = None
    created_at: datetime


class NewCall(CamelModel):
    """Field rules for a call request, checked before a Call is built."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    customer_name: str = Field(min_length=1, max_length=80)
    phone_number: str = Field(min_length=7, max_length=20, pattern=PHONE_NUMBER_PATTERN)
    workflow: Workflow
    scheduled_at: datetime | None = None

    @field_validator("scheduled_at")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class UpdateStatusRequest(CamelModel):
    status: CallStatus


class CallEnvelope(CamelModel):
    call: Call


class CallListResponse(CamelModel):
    calls: list[Call]


class StatusUpdateResponse(CamelModel):
    call: Call
    idempotent: bool = False


class ClearCallsResponse(CamelModel):
    success: bool
    deleted: int


class TransitionResult(BaseModel):
    call: Call
    changed: bool
    already_final: bool = False


class CallbackResult(BaseModel):
    call: Call
    idempotent: bool = False
