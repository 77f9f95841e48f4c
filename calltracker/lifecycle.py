"""Call lifecycle: creation rules and the status state machine.

No I/O. PENDING is the only initial state; COMPLETED and FAILED are terminal.
Transitions out of a terminal state are acknowledged as no-ops so that a
provider callback delivered more than once does not change the outcome.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from calltracker.exceptions.custom import CallValidationError, InvalidTransitionError
from calltracker.schemas.calls import Call, CallStatus, NewCall, TransitionResult

TERMINAL_STATUSES = frozenset({CallStatus.COMPLETED, CallStatus.FAILED})


def is_terminal(status: CallStatus) -> bool:
    return status in TERMINAL_STATUSES


def new_call_id() -> str:
    return uuid.uuid4().hex


def field_errors(errors: Iterable[Mapping[str, Any]]) -> dict[str, list[str]]:
    """Group pydantic error entries by the JSON field they refer to."""
    grouped: dict[str, list[str]] = {}
    for err in errors:
        loc = [part for part in err.get("loc", ()) if part != "body"]
        field = str(loc[0]) if loc else "body"
        grouped.setdefault(field, []).append(err.get("msg", "Invalid value"))
    return grouped


def create_call(
    customer_name: Any,
    phone_number: Any,
    workflow: Any,
    scheduled_at: Any = None,
    *,
    now: datetime | None = None,
) -> Call:
    """Validate a call request and build a PENDING Call.

    Raises CallValidationError listing every field that broke a rule.
    """
    try:
        data = NewCall.model_validate({
            "customerName": customer_name,
            "phoneNumber": phone_number,
            "workflow": workflow,
            "scheduledAt": scheduled_at,
        })
    except ValidationError as exc:
        raise CallValidationError(field_errors(exc.errors())) from exc

    return Call(
        id=new_call_id(),
        customer_name=data.customer_name,
        phone_number=data.phone_number,
        workflow=data.workflow,
        status=CallStatus.PENDING,
        scheduled_at=data.scheduled_at,
        created_at=now or datetime.now(timezone.utc),
    )


def transition(call: Call, target: CallStatus) -> TransitionResult:
    # Anything delivered to a finalized call is acknowledged, whatever the target
    if is_terminal(call.status):
        return TransitionResult(call=call, changed=False, already_final=True)

    if target == CallStatus.PENDING:
        raise InvalidTransitionError("status must be COMPLETED or FAILED")

    return TransitionResult(
        call=call.model_copy(update={"status": target}),
        changed=True,
    )
