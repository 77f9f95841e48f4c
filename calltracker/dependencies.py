import re
from typing import Annotated

from fastapi import Depends, Header, Request

from calltracker.config import Settings
from calltracker.exceptions.custom import UnauthorizedError
from calltracker.services.callbacks import StatusCallbackHandler
from calltracker.services.orchestrator import CallOrchestrator
from calltracker.store import CallStore

_BEARER_RE = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_call_store(request: Request) -> CallStore:
    return request.app.state.call_store


def get_orchestrator(request: Request) -> CallOrchestrator:
    return request.app.state.orchestrator


def get_callback_handler(request: Request) -> StatusCallbackHandler:
    return request.app.state.callback_handler


SettingsDep = Annotated[Settings, Depends(get_settings)]
CallStoreDep = Annotated[CallStore, Depends(get_call_store)]
OrchestratorDep = Annotated[CallOrchestrator, Depends(get_orchestrator)]
CallbackHandlerDep = Annotated[StatusCallbackHandler, Depends(get_callback_handler)]


def parse_bearer(header: str | None) -> str | None:
    match = _BEARER_RE.match(header or "")
    if not match:
        return None
    return match.group(1).strip() or None


def require_token(
    settings: SettingsDep,
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    # No configured token means open access
    if not settings.api_token:
        return
    if parse_bearer(authorization) != settings.api_token:
        raise UnauthorizedError()
