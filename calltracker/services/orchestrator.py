import logging
from datetime import datetime, timezone
from typing import Any

from calltracker.exceptions.custom import (
    CallAlreadyDispatchedError,
    CallNotFoundError,
    ProviderMismatchError,
    ProviderTransportError,
    StoreUnavailableError,
)
from calltracker.lifecycle import create_call, is_terminal
from calltracker.scheduler import Scheduler
from calltracker.schemas.calls import Call, CallStatus
from calltracker.schemas.provider import ProviderAcceptance
from calltracker.services.callbacks import StatusCallbackHandler
from calltracker.services.provider import ProviderSimulator
from calltracker.services.transport import LocalProviderTransport, ProviderTransport
from calltracker.store import CallStore

logger = logging.getLogger(__name__)

# Failures of a scheduled delivery are dropped, never retried
_DROPPED_DISPATCH_ERRORS = (
    CallNotFoundError,
    CallAlreadyDispatchedError,
    ProviderTransportError,
    StoreUnavailableError,
)
_DROPPED_CALLBACK_ERRORS = (
    CallNotFoundError,
    ProviderMismatchError,
    ProviderTransportError,
    StoreUnavailableError,
)


def compute_dispatch_delay_ms(
    scheduled_at: datetime | None, now: datetime | None = None
) -> int:
    """Milliseconds until *scheduled_at*, or 0 when absent or already past."""
    if scheduled_at is None:
        return 0
    now = now or datetime.now(timezone.utc)
    return max(int((scheduled_at - now).total_seconds() * 1000), 0)


class CallOrchestrator:
    """Creates calls and drives the simulated provider round-trip.

    submit() returns as soon as the call is stored. Dispatch runs after the
    scheduled delay; the provider acceptance step then schedules the status
    callback, so for one call dispatch always precedes its outcome.

    Both hops go through a ProviderTransport. The default one calls
    accept_dispatch and the callback handler in-process; an
    HttpProviderTransport goes through the HTTP API instead.
    """

    def __init__(
        self,
        store: CallStore,
        scheduler: Scheduler,
        simulator: ProviderSimulator,
        callbacks: StatusCallbackHandler,
        transport: ProviderTransport | None = None,
    ) -> None:
        self._store = store
        self._scheduler = scheduler
        self._simulator = simulator
        self._transport = transport or LocalProviderTransport(self.accept_dispatch, callbacks)

    async def submit(
        self,
        customer_name: Any,
        phone_number: Any,
        workflow: Any,
        scheduled_at: Any = None,
    ) -> Call:
        call = create_call(customer_name, phone_number, workflow, scheduled_at)
        call = await self._store.create(call)

        delay_ms = compute_dispatch_delay_ms(call.scheduled_at)
        self._scheduler.schedule(
            delay_ms, lambda: self._dispatch(call), name=f"dispatch:{call.id}",
        )
        logger.info(
            "Call %s created (%s), dispatch in %d ms", call.id, call.workflow.value, delay_ms,
        )
        return call

    async def accept_dispatch(self, call_id: str) -> ProviderAcceptance:
        """Provider side of a dispatch: assign a providerId and schedule the outcome."""
        call = await self._store.get(call_id)
        if call is None:
            raise CallNotFoundError(call_id)
        if call.provider_id is not None or is_terminal(call.status):
            raise CallAlreadyDispatchedError(call_id, call.provider_id)

        dispatch = self._simulator.dispatch(call)
        updated = await self._store.conditional_update(
            call_id,
            expected_status=CallStatus.PENDING,
            provider_id=dispatch.provider_id,
            require_unassigned=True,
        )
        if updated is None:
            current = await self._store.get(call_id)
            if current is None:
                raise CallNotFoundError(call_id)
            raise CallAlreadyDispatchedError(call_id, current.provider_id)

        self._scheduler.schedule(
            dispatch.response_delay_ms,
            lambda: self._deliver_outcome(call_id, dispatch.provider_id, dispatch.outcome),
            name=f"callback:{call_id}",
        )
        logger.info(
            "Provider accepted call %s as %s, reporting in %d ms",
            call_id, dispatch.provider_id, dispatch.response_delay_ms,
        )
        return ProviderAcceptance(
            provider_id=dispatch.provider_id,
            scheduled_in_ms=dispatch.response_delay_ms,
        )

    async def _dispatch(self, call: Call) -> None:
        try:
            await self._transport.send_dispatch(call)
        except _DROPPED_DISPATCH_ERRORS as exc:
            logger.warning("Dispatch of call %s dropped: %s", call.id, exc)

    async def _deliver_outcome(
        self, call_id: str, provider_id: str, outcome: CallStatus
    ) -> None:
        try:
            await self._transport.send_status(call_id, provider_id, outcome)
        except _DROPPED_CALLBACK_ERRORS as exc:
            logger.warning("Status callback for call %s dropped: %s", call_id, exc)
