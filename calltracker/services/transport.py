import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import httpx

from calltracker.exceptions.custom import ProviderTransportError
from calltracker.schemas.calls import Call, CallbackResult, CallStatus
from calltracker.schemas.provider import ProviderAcceptance
from calltracker.services.callbacks import StatusCallbackHandler

logger = logging.getLogger(__name__)

SEND_CALL_PATH = "/api/provider/send-call"
PROVIDER_STATUS_PATH = "/api/webhooks/provider-status"


class ProviderTransport(Protocol):
    """How a dispatch reaches the provider and how its outcome comes back."""

    async def send_dispatch(self, call: Call) -> Any: ...

    async def send_status(
        self, call_id: str, provider_id: str | None, outcome: CallStatus
    ) -> Any: ...


class LocalProviderTransport:
    """Runs both hops in-process, with no HTTP round-trip."""

    def __init__(
        self,
        accept_dispatch: Callable[[str], Awaitable[ProviderAcceptance]],
        callbacks: StatusCallbackHandler,
    ) -> None:
        self._accept_dispatch = accept_dispatch
        self._callbacks = callbacks

    async def send_dispatch(self, call: Call) -> ProviderAcceptance:
        return await self._accept_dispatch(call.id)

    async def send_status(
        self, call_id: str, provider_id: str | None, outcome: CallStatus
    ) -> CallbackResult:
        return await self._callbacks.apply_outcome(call_id, provider_id, outcome)


class HttpProviderTransport:
    """Delivers dispatches and status callbacks through the public HTTP API.

    Mirrors how a separately deployed provider would reach this service.
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str, api_token: str = ""):
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {api_token}"} if api_token else {}

    async def send_dispatch(self, call: Call) -> dict:
        payload = {
            "callId": call.id,
            "phoneNumber": call.phone_number,
            "workflow": call.workflow.value,
        }
        logger.info("Sending call %s to provider", call.id)
        return await self._post(SEND_CALL_PATH, payload, headers=self._headers)

    async def send_status(
        self, call_id: str, provider_id: str | None, outcome: CallStatus
    ) -> dict:
        payload: dict = {"callId": call_id, "status": outcome.value}
        if provider_id:
            payload["providerId"] = provider_id
        logger.info("Delivering %s status for call %s", outcome.value, call_id)
        return await self._post(PROVIDER_STATUS_PATH, payload)

    async def _post(self, path: str, payload: dict, headers: dict | None = None) -> dict:
        url = f"{self._base_url}{path}"
        try:
            resp = await self._client.post(url, json=payload, headers=headers or {})
        except httpx.HTTPError as exc:
            raise ProviderTransportError(f"{path}: {exc}") from exc

        if resp.status_code >= 400:
            raise ProviderTransportError(resp.text, status_code=resp.status_code)

        return resp.json()
