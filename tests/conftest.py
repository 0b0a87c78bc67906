from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from typing import Any

import pytest

from pysynced.client import SyncClient
from pysynced.config import SyncConfig
from pysynced.exceptions import RemoteCallFailure
from pysynced.models.results import UpdateResult


class FakeRemote:
    """In-memory remote whose first N calls of each kind fail."""

    def __init__(
        self,
        *,
        fail_updates: int = 0,
        fail_inserts: int = 0,
        fail_keys: set[Any] | None = None,
        raise_errors: bool = False,
        insert_rows: list[dict[str, Any]] | None = None,
        next_id: int = 42,
        rows: list[dict[str, Any]] | None = None,
    ) -> None:
        self.fail_updates = fail_updates
        self.fail_inserts = fail_inserts
        self.fail_keys = fail_keys or set()
        self.raise_errors = raise_errors
        self.insert_rows = insert_rows
        self.next_id = next_id
        self.rows = rows or []
        self.update_calls: list[tuple[list[Any], str]] = []
        self.insert_calls: list[tuple[dict[str, Any], str]] = []
        self.gate: asyncio.Event | None = None

    def _failure(self, endpoint: str) -> RemoteCallFailure:
        if self.raise_errors:
            raise RuntimeError(f"{endpoint} exploded")
        return RemoteCallFailure(f"{endpoint} failed", endpoint=endpoint)

    async def transactional_update(
        self,
        keys: Sequence[Any],
        request_template: str,
    ) -> list[UpdateResult] | RemoteCallFailure:
        self.update_calls.append((list(keys), request_template))
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0)
        if len(self.update_calls) <= self.fail_updates or self.fail_keys.intersection(keys):
            return self._failure("update")
        return [UpdateResult(key=key, changes=1) for key in keys]

    async def transactional_insert(
        self,
        record: Mapping[str, Any],
        request_template: str,
    ) -> list[dict[str, Any]] | RemoteCallFailure:
        self.insert_calls.append((dict(record), request_template))
        await asyncio.sleep(0)
        if len(self.insert_calls) <= self.fail_inserts:
            return self._failure("insert")
        if self.insert_rows is not None:
            return self.insert_rows
        row = {**record, "id": self.next_id}
        self.next_id += 1
        return [row]

    async def fetch_all(self, query: str) -> list[dict[str, Any]]:
        return [dict(row) for row in self.rows]


class RecordingSleep:
    """Drop-in for ``asyncio.sleep`` that records delays and does not wait."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


WIDGETS: list[dict[str, Any]] = [
    {"id": 1, "description": "first widget", "active": False},
    {"id": 2, "description": "second widget", "active": True},
    {"id": 3, "description": "third widget", "active": False},
]


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_client(recording_sleep: RecordingSleep):
    def _make(remote: FakeRemote, **config: Any) -> SyncClient:
        return SyncClient(remote, config=SyncConfig(**config), sleep=recording_sleep)

    return _make
