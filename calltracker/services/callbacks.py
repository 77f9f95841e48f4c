import logging

from calltracker.exceptions.custom import CallNotFoundError, ProviderMismatchError
from calltracker.lifecycle import is_terminal, transition
from calltracker.schemas.calls import CallbackResult, CallStatus
from calltracker.store import CallStore

logger = logging.getLogger(__name__)


class StatusCallbackHandler:
    """Applies a provider outcome to a call, at most once.

    Deliveries are at-least-once, so a call that is already COMPLETED or
    FAILED acknowledges any further outcome as idempotent and stays as is.
    """

    def __init__(self, store: CallStore) -> None:
        self._store = store

    async def apply_outcome(
        self,
        call_id: str,
        provider_id: str | None,
        outcome: CallStatus,
    ) -> CallbackResult:
        call = await self._store.get(call_id)
        if call is None:
            raise CallNotFoundError(call_id)

        result = transition(call, outcome)
        if result.already_final:
            logger.info(
                "Call %s already %s, ignoring %s", call_id, call.status.value, outcome.value,
            )
            return CallbackResult(call=call, idempotent=True)

        updated = await self._store.conditional_update(
            call_id,
            expected_status=CallStatus.PENDING,
            status=result.call.status,
            provider_id=provider_id or None,
            expected_provider_id=provider_id or None,
        )
        if updated is None:
            current = await self._store.get(call_id)
            if current is None:
                raise CallNotFoundError(call_id)
            if is_terminal(current.status):
                logger.info("Call %s finalized concurrently as %s", call_id, current.status.value)
                return CallbackResult(call=current, idempotent=True)

            # Still PENDING, so the guard failed on a different providerId
            logger.warning(
                "Rejected %s for call %s: providerId %s does not match %s",
                outcome.value, call_id, provider_id, current.provider_id,
            )
            raise ProviderMismatchError(call_id)

        logger.info("Call %s -> %s (provider_id=%s)", call_id, updated.status.value, updated.provider_id)
        return CallbackResult(call=updated, idempotent=False)
