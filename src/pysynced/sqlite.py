"""SQLite remote backed by aiosqlite.

This is the server side of the transactional actions: it applies a batched
update atomically and returns inserted rows with their generated key.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import aiosqlite

from pysynced._constants import INSERT_ENDPOINT, UPDATE_ENDPOINT
from pysynced.exceptions import RemoteCallFailure, SyncedError
from pysynced.models.results import UpdateResult

_logger = logging.getLogger(__name__)


def _row_to_dict(row: sqlite3.Row) -> dict[str, Any]:
    return {key: row[key] for key in row.keys()}


async def _execute(conn: aiosqlite.Connection, sql: str) -> None:
    async with conn.execute(sql):
        pass


class SqliteRemote:
    """Remote store in a local SQLite database.

    Insert templates bind the record by name (``:description`` or
    ``@description``) and should end with ``RETURNING *`` so the generated
    key comes back. Update templates take the key as their only parameter.

    Parameters
    ----------
    path : str or Path
        Database file, or ``":memory:"``.
    latency : float
        Seconds to wait after each transactional call, to simulate a slow
        endpoint.
    """

    def __init__(self, path: str | Path, *, latency: float = 0.0) -> None:
        self._path = str(path)
        self._latency = latency
        self._conn: aiosqlite.Connection | None = None
        # One connection is shared, so transactions must not interleave.
        self._tx_lock = asyncio.Lock()

    async def __aenter__(self) -> SqliteRemote:
        await self.open()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def open(self) -> None:
        if self._conn is not None:
            return
        conn = await aiosqlite.connect(self._path, isolation_level=None)
        conn.row_factory = sqlite3.Row
        await _execute(conn, "PRAGMA journal_mode = WAL")
        self._conn = conn

    async def close(self) -> None:
        conn = self._conn
        self._conn = None
        if conn is not None:
            await conn.close()

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise SyncedError("Database not open. Use 'async with SqliteRemote(...) as remote:'")
        return self._conn

    async def executescript(self, script: str) -> None:
        """Run schema/fixture SQL outside of the synced paths."""
        await self._require_conn().executescript(script)

    async def _rollback(self, conn: aiosqlite.Connection) -> None:
        # in_transaction is unreliable here: a cancelled BEGIN may still be queued on the worker thread.
        try:
            await _execute(conn, "ROLLBACK")
        except sqlite3.OperationalError:
            _logger.debug("Nothing to roll back", exc_info=True)

    async def _simulate_latency(self) -> None:
        if self._latency > 0:
            await asyncio.sleep(self._latency)

    async def transactional_update(
        self,
        keys: Sequence[Any],
        request_template: str,
    ) -> list[UpdateResult] | RemoteCallFailure:
        conn = self._require_conn()
        results: list[UpdateResult] = []
        async with self._tx_lock:
            try:
                await _execute(conn, "BEGIN IMMEDIATE")
                for key in keys:
                    async with conn.execute(request_template, (key,)) as cursor:
                        results.append(UpdateResult(key=key, changes=cursor.rowcount, last_row_id=cursor.lastrowid))
                await _execute(conn, "COMMIT")
            except sqlite3.Error as exc:
                _logger.debug("Transactional update failed", exc_info=True)
                await self._rollback(conn)
                return RemoteCallFailure(
                    f"Error while running update transaction: {exc}",
                    endpoint=UPDATE_ENDPOINT,
                    cause=exc,
                )
            except BaseException:
                await self._rollback(conn)
                raise
        await self._simulate_latency()
        return results

    async def transactional_insert(
        self,
        record: Mapping[str, Any],
        request_template: str,
    ) -> list[dict[str, Any]] | RemoteCallFailure:
        conn = self._require_conn()
        async with self._tx_lock:
            try:
                await _execute(conn, "BEGIN IMMEDIATE")
                async with conn.execute(request_template, dict(record)) as cursor:
                    rows = [_row_to_dict(row) for row in await cursor.fetchall()]
                await _execute(conn, "COMMIT")
            except sqlite3.Error as exc:
                _logger.debug("Transactional insert failed", exc_info=True)
                await self._rollback(conn)
                return RemoteCallFailure(
                    f"Error while running insert transaction: {exc}",
                    endpoint=INSERT_ENDPOINT,
                    cause=exc,
                )
            except BaseException:
                await self._rollback(conn)
                raise
        await self._simulate_latency()
        return rows

    async def fetch_all(self, query: str) -> list[dict[str, Any]]:
        async with self._require_conn().execute(query) as cursor:
            return [_row_to_dict(row) for row in await cursor.fetchall()]
