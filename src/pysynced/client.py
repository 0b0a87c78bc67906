"""Synchronization engine service object."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Coroutine, Mapping, Sequence
from typing import Any, TypeVar

from pydantic import BaseModel

from pysynced._backoff import Backoff
from pysynced._client import creation as _creation
from pysynced._client import mutation as _mutation
from pysynced._ids import ClientIdAllocator
from pysynced.config import SyncConfig
from pysynced.models.item import SyncedItem, as_record
from pysynced.models.requests import CreationRequest, MutationRequest
from pysynced.models.status import NetworkStatus
from pysynced.remote import Remote
from pysynced.state.store import SyncedStore

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class SyncClient:
    """Keeps a :class:`SyncedStore` in sync with a :class:`Remote`.

    The client is an explicit handle: pass it to whatever needs to issue
    changes. Operations apply their optimistic change before returning and
    finish in a background task that never raises remote failures.

    Usage::

        async with SqliteRemote("widgets.sqlite3") as remote:
            client = SyncClient(remote)
            await client.load("SELECT * FROM widgets", model=Widget)
            item = client.store.items()[0]
            client.run_synced_mutation(
                [item],
                key_field="id",
                mutated_field="active",
                new_value=True,
                request_template="UPDATE widgets SET active = 1 WHERE id = ?",
            )
            await client.drain()
    """

    def __init__(
        self,
        remote: Remote,
        *,
        store: SyncedStore | None = None,
        config: SyncConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self._config = config or SyncConfig()
        self._remote = remote
        if store is None:
            store = SyncedStore(id_allocator=ClientIdAllocator(self._config.client_id_length))
        self._store = store
        self._sleep = sleep
        self._rng = rng
        self._tasks: set[asyncio.Task[Any]] = set()
        self._failed_mutations: list[MutationRequest] = []
        self._failed_creations: list[CreationRequest] = []

    @property
    def store(self) -> SyncedStore:
        return self._store

    @property
    def remote(self) -> Remote:
        return self._remote

    @property
    def config(self) -> SyncConfig:
        return self._config

    @property
    def sleep(self) -> Callable[[float], Awaitable[None]]:
        return self._sleep

    @property
    def pending(self) -> frozenset[asyncio.Task[Any]]:
        """Background synchronization tasks still running."""
        return frozenset(self._tasks)

    @property
    def failed_mutations(self) -> tuple[MutationRequest, ...]:
        """Mutations waiting for :meth:`retry_failed_mutations`, oldest first.

        At most ``config.max_failed_requests`` are kept.
        """
        return tuple(self._failed_mutations)

    @property
    def failed_creations(self) -> tuple[CreationRequest, ...]:
        return tuple(self._failed_creations)

    def new_backoff(self) -> Backoff:
        """Fresh backoff state for one operation."""
        return Backoff(self._config.initial_delay, self._config.max_delay, rng=self._rng)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self, query: str, *, model: type[BaseModel] | None = None) -> list[SyncedItem]:
        """Seed the store from a bulk read. Only allowed once.

        With *model*, every row is validated into that pydantic model before
        seeding, so stored values carry the domain types (``active=1`` from
        SQLite becomes ``True`` for a ``bool`` field).
        """
        rows = await self._remote.fetch_all(query)
        if model is None:
            self._store.seed(rows)
        else:
            self._store.seed([model.model_validate(row) for row in rows])
        _logger.debug("Loaded %d item(s)", len(rows))
        return self._store.items()

    # ------------------------------------------------------------------
    # Synced operations
    # ------------------------------------------------------------------

    def run_synced_mutation(
        self,
        items: Sequence[SyncedItem | str],
        *,
        key_field: str,
        mutated_field: str,
        new_value: Any,
        request_template: str,
    ) -> asyncio.Task[NetworkStatus]:
        """Set *mutated_field* to *new_value* on every item, then persist the batch.

        The returned task resolves to ``SYNCED`` or, after the retry budget is
        spent and the field is rolled back, ``FAILED``.
        """
        request = MutationRequest(
            client_ids=tuple(item.client_id if isinstance(item, SyncedItem) else item for item in items),
            key_field=key_field,
            mutated_field=mutated_field,
            new_value=new_value,
            request_template=request_template,
        )
        return _mutation.start_mutation(self, request)

    def run_synced_creation(
        self,
        new_item: Mapping[str, Any] | BaseModel,
        *,
        key_field: str,
        request_template: str,
    ) -> asyncio.Task[SyncedItem | None]:
        """Insert *new_item* immediately and persist it.

        The returned task resolves to the synced item carrying its server key,
        or ``None`` once a failed creation has been removed from the store.
        """
        request = CreationRequest(
            new_item=as_record(new_item),
            key_field=key_field,
            request_template=request_template,
        )
        return _creation.start_creation(self, request)

    def retry_failed_mutations(self) -> list[asyncio.Task[NetworkStatus]]:
        """Re-issue every mutation that ended in ``FAILED``."""
        requests, self._failed_mutations = self._failed_mutations, []
        tasks: list[asyncio.Task[NetworkStatus]] = []
        for request in requests:
            remaining = tuple(cid for cid in request.client_ids if cid in self._store)
            if not remaining:
                _logger.warning("Dropping failed mutation of %r: items no longer exist", request.mutated_field)
                continue
            tasks.append(_mutation.start_mutation(self, request.model_copy(update={"client_ids": remaining})))
        return tasks

    def retry_failed_creations(self) -> list[asyncio.Task[SyncedItem | None]]:
        """Re-issue every creation that was removed after a terminal failure."""
        requests, self._failed_creations = self._failed_creations, []
        return [_creation.start_creation(self, request) for request in requests]

    async def drain(self) -> None:
        """Wait until no synchronization task is running."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, T]) -> asyncio.Task[T]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _remember_failed_mutation(self, request: MutationRequest) -> None:
        self._remember(self._failed_mutations, request, kind="mutation")

    def _remember_failed_creation(self, request: CreationRequest) -> None:
        self._remember(self._failed_creations, request, kind="creation")

    def _remember(self, failed: list[Any], request: Any, *, kind: str) -> None:
        failed.append(request)
        overflow = len(failed) - self._config.max_failed_requests
        if overflow > 0:
            del failed[:overflow]
            _logger.warning(
                "Dropped %d oldest failed %s(s), keeping the last %d",
                overflow,
                kind,
                self._config.max_failed_requests,
            )
