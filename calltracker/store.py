from __future__ import annotations

from typing import Protocol

from calltracker.schemas.calls import Call, CallStatus


class CallStore(Protocol):
    async def create(self, call: Call) -> Call: ...

    async def get(self, call_id: str) -> Call | None: ...

    async def list_recent(self, limit: int = 100) -> list[Call]: ...

    async def conditional_update(
        self,
        call_id: str,
        *,
        expected_status: CallStatus,
        status: CallStatus | None = None,
        provider_id: str | None = None,
        require_unassigned: bool = False,
        expected_provider_id: str | None = None,
    ) -> Call | None:
        """Atomically update a call if its current state passes the guard.

        The guard is ``status == expected_status`` plus, with
        *require_unassigned*, ``provider_id is None``; with
        *expected_provider_id*, ``provider_id`` must be None or equal to it.
        *provider_id* is only written when the call has none yet. Returns the
        updated call, or None when the call is missing or the guard failed.
        """
        ...

    async def delete_all(self) -> int: ...

    async def close(self) -> None: ...


class InMemoryCallStore:
    def __init__(self) -> None:
        self._calls: dict[str, Call] = {}

    async def create(self, call: Call) -> Call:
        if call.id in self._calls:
            raise ValueError(f"Duplicate call id {call.id}")
        self._calls[call.id] = call
        return call

    async def get(self, call_id: str) -> Call | None:
        return self._calls.get(call_id)

    async def list_recent(self, limit: int = 100) -> list[Call]:
        # Reversed first so equal timestamps keep newest-inserted first
        newest_first = list(reversed(self._calls.values()))
        newest_first.sort(key=lambda c: c.created_at, reverse=True)
        return newest_first[:limit]

    async def conditional_update(
        self,
        call_id: str,
        *,
        expected_status: CallStatus,
        status: CallStatus | None = None,
        provider_id: str | None = None,
        require_unassigned: bool = False,
        expected_provider_id: str | None = None,
    ) -> Call | None:
        # No await between the guard and the write, so this runs as one step
        call = self._calls.get(call_id)
        if call is None or call.status != expected_status:
            return None
        if require_unassigned and call.provider_id is not None:
            return None
        if expected_provider_id is not None and call.provider_id not in (None, expected_provider_id):
            return None

        changes: dict[str, object] = {}
        if status is not None:
            changes["status"] = status
        if provider_id is not None and call.provider_id is None:
            changes["provider_id"] = provider_id

        updated = call.model_copy(update=changes)
        self._calls[call_id] = updated
        return updated

    async def delete_all(self) -> int:
        deleted = len(self._calls)
        self._calls.clear()
        return deleted

    async def close(self) -> None:
        return None
