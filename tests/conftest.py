from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Awaitable, Callable

import httpx
import pytest
from httpx import ASGITransport

API_TOKEN = "test-token"


@dataclass
class ScheduledAction:
    delay_ms: int
    name: str | None
    action: Callable[[], Awaitable[None]]


class ManualScheduler:
    """Records scheduled actions; tests fire them explicitly."""

    def __init__(self) -> None:
        self.scheduled: list[ScheduledAction] = []

    def schedule(self, delay_ms, action, *, name=None):
        item = ScheduledAction(delay_ms, name, action)
        self.scheduled.append(item)
        return item

    async def run_next(self) -> ScheduledAction:
        item = self.scheduled.pop(0)
        await item.action()
        return item

    async def run_all(self) -> None:
        while self.scheduled:
            await self.run_next()


@pytest.fixture
def manual_scheduler():
    return ManualScheduler()


@pytest.fixture
def mock_env(monkeypatch):
    monkeypatch.setenv("API_TOKEN", API_TOKEN)
    monkeypatch.setenv("DATABASE_URL", "")
    monkeypatch.setenv("PROVIDER_DELAY_MS_MIN", "0")
    monkeypatch.setenv("PROVIDER_DELAY_MS_MAX", "0")
    monkeypatch.setenv("PROVIDER_FAIL_RATE", "0")
    monkeypatch.setenv("PROVIDER_TRANSPORT", "local")


@asynccontextmanager
async def _app_client():
    from calltracker.main import app, lifespan

    async with lifespan(app):
        async with httpx.AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            headers={"Authorization": f"Bearer {API_TOKEN}"},
        ) as c:
            yield c


@pytest.fixture
async def client(mock_env):
    async with _app_client() as c:
        yield c


@pytest.fixture
async def slow_provider_client(mock_env, monkeypatch):
    """Provider reports back after a minute, so outcomes never land mid-test."""
    monkeypatch.setenv("PROVIDER_DELAY_MS_MIN", "60000")
    monkeypatch.setenv("PROVIDER_DELAY_MS_MAX", "60000")
    async with _app_client() as c:
        yield c


@pytest.fixture
async def open_client(mock_env, monkeypatch):
    """App started without API_TOKEN."""
    monkeypatch.setenv("API_TOKEN", "")
    async with _app_client() as c:
        yield c
