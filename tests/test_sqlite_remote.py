from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from conftest import RecordingSleep

from pysynced.client import SyncClient
from pysynced.exceptions import RemoteCallFailure
from pysynced.models.results import UpdateResult
from pysynced.models.status import NetworkStatus
from pysynced.models.widget import Widget
from pysynced.sqlite import SqliteRemote

_SCHEMA = """
CREATE TABLE widgets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    description TEXT NOT NULL,
    active INTEGER NOT NULL DEFAULT 0 CHECK (active IN (0, 1))
);
INSERT INTO widgets (description, active) VALUES ('first widget', 0), ('second widget', 1);
"""

SELECT_WIDGETS = "SELECT id, description, active FROM widgets ORDER BY id"
INSERT_WIDGET = "INSERT INTO widgets (description, active) VALUES (@description, @active) RETURNING *"


async def _open(tmp_path: Path) -> SqliteRemote:
    remote = SqliteRemote(tmp_path / "widgets.sqlite3")
    await remote.open()
    await remote.executescript(_SCHEMA)
    return remote


@pytest.mark.asyncio
async def test_update_applies_every_key(tmp_path: Path) -> None:
    remote = await _open(tmp_path)
    try:
        result = await remote.transactional_update([1, 2], "UPDATE widgets SET active = 1 WHERE id = ?")
        assert not isinstance(result, RemoteCallFailure)
        assert [(row.key, row.changes) for row in result] == [(1, 1), (2, 1)]
        assert all(isinstance(row, UpdateResult) for row in result)
        assert [row["active"] for row in await remote.fetch_all(SELECT_WIDGETS)] == [1, 1]
    finally:
        await remote.close()


@pytest.mark.asyncio
async def test_update_is_all_or_nothing(tmp_path: Path) -> None:
    remote = await _open(tmp_path)
    try:
        # Widget 1 goes 0 -> 1, widget 2 would go 1 -> 2 and violate the CHECK.
        result = await remote.transactional_update([1, 2], "UPDATE widgets SET active = active + 1 WHERE id = ?")
        assert isinstance(result, RemoteCallFailure)
        assert [row["active"] for row in await remote.fetch_all(SELECT_WIDGETS)] == [0, 1]
    finally:
        await remote.close()


@pytest.mark.asyncio
async def test_insert_returns_generated_key(tmp_path: Path) -> None:
    remote = await _open(tmp_path)
    try:
        rows = await remote.transactional_insert({"description": "foo widget", "active": True}, INSERT_WIDGET)
        assert rows == [{"id": 3, "description": "foo widget", "active": 1}]
    finally:
        await remote.close()


@pytest.mark.asyncio
async def test_bad_template_is_returned_as_failure(tmp_path: Path) -> None:
    remote = await _open(tmp_path)
    try:
        result = await remote.transactional_insert({"description": "x"}, "INSERT INTO nope VALUES (@description)")
        assert isinstance(result, RemoteCallFailure)
        # The connection is usable again after the rollback.
        assert len(await remote.fetch_all(SELECT_WIDGETS)) == 2
    finally:
        await remote.close()


@pytest.mark.asyncio
async def test_cancelled_update_leaves_no_open_transaction(tmp_path: Path) -> None:
    remote = await _open(tmp_path)
    try:
        conn = remote._require_conn()
        task = asyncio.ensure_future(
            remote.transactional_update([1, 2] * 2000, "UPDATE widgets SET active = 1 WHERE id = ?")
        )
        for _ in range(1000):
            if conn.in_transaction:
                break
            await asyncio.sleep(0.001)
        assert conn.in_transaction

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert not conn.in_transaction
        assert [row["active"] for row in await remote.fetch_all(SELECT_WIDGETS)] == [0, 1]
        # The next call starts a fresh transaction instead of failing once.
        result = await remote.transactional_update([1], "UPDATE widgets SET active = 1 WHERE id = ?")
        assert not isinstance(result, RemoteCallFailure)
    finally:
        await remote.close()


@pytest.mark.asyncio
async def test_end_to_end_toggle_and_create(tmp_path: Path) -> None:
    sleep = RecordingSleep()
    async with SqliteRemote(tmp_path / "widgets.sqlite3") as remote:
        await remote.executescript(_SCHEMA)
        client = SyncClient(remote, sleep=sleep)
        items = await client.load(SELECT_WIDGETS, model=Widget)
        assert [item.data["active"] for item in items] == [False, True]

        toggle = client.run_synced_mutation(
            items[:1],
            key_field="id",
            mutated_field="active",
            new_value=True,
            request_template="UPDATE widgets SET active = 1 WHERE id = ?",
        )
        create = client.run_synced_creation(
            {"description": "foo widget", "active": True},
            key_field="id",
            request_template=INSERT_WIDGET,
        )

        assert await toggle is NetworkStatus.SYNCED
        created = await create
        assert created is not None
        assert created.data["id"] == 3
        assert [item.data["active"] for item in client.store.items()] == [True, True, True]

        rows = await remote.fetch_all(SELECT_WIDGETS)
        assert [(row["id"], row["active"]) for row in rows] == [(1, 1), (2, 1), (3, 1)]


@pytest.mark.asyncio
async def test_end_to_end_failing_template_rolls_back(tmp_path: Path) -> None:
    sleep = RecordingSleep()
    async with SqliteRemote(tmp_path / "widgets.sqlite3") as remote:
        await remote.executescript(_SCHEMA)
        client = SyncClient(remote, sleep=sleep)
        items = await client.load(SELECT_WIDGETS, model=Widget)

        status = await client.run_synced_mutation(
            items,
            key_field="id",
            mutated_field="active",
            new_value=False,
            request_template="UPDATE widgetz SET active = 0 WHERE id = ?",
        )

        assert status is NetworkStatus.FAILED
        assert [item.data["active"] for item in client.store.items()] == [False, True]
        assert len(sleep.delays) == 2
