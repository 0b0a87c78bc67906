"""In-memory store of synced items.

The store exposes a single write primitive, :meth:`SyncedStore.commit`. A
commit runs against a :class:`StoreDraft` working copy and replaces the live
state in one step, so a batch over N items is never observed half-applied.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any

from pydantic import BaseModel

from pysynced._ids import ClientIdAllocator
from pysynced.exceptions import SyncedError, UnknownItemError
from pysynced.models.item import SyncedItem, SyncMeta, as_record
from pysynced.models.status import NetworkStatus
from pysynced.state.events import ChangeReason, StoreChange

_logger = logging.getLogger(__name__)

Subscriber = Callable[[StoreChange], None]

# Bail out instead of spinning if the id space is effectively exhausted.
_MAX_ID_DRAWS = 1000


class StoreDraft:
    """Mutable working copy handed to :meth:`SyncedStore.commit` callbacks."""

    def __init__(self, items: dict[str, SyncedItem], order: list[str]) -> None:
        self._items = dict(items)
        self._order = list(order)
        self._changed: dict[str, None] = {}
        self._added: dict[str, None] = {}
        self._removed: dict[str, None] = {}

    def __contains__(self, client_id: object) -> bool:
        return client_id in self._items

    def get(self, client_id: str) -> SyncedItem:
        try:
            return self._items[client_id]
        except KeyError:
            raise UnknownItemError(client_id) from None

    def set_field(self, client_id: str, field: str, value: Any) -> None:
        self._items[client_id] = self.get(client_id).with_field(field, copy.deepcopy(value))
        self._mark_changed(client_id)

    def set_status(self, client_id: str, status: NetworkStatus) -> None:
        self._items[client_id] = self.get(client_id).with_status(status)
        self._mark_changed(client_id)

    def set_statuses(self, client_ids: Iterable[str], status: NetworkStatus) -> None:
        for client_id in client_ids:
            self.set_status(client_id, status)

    def insert(self, item: SyncedItem) -> None:
        client_id = item.client_id
        if client_id in self._items:
            raise SyncedError(f"Duplicate client-side id: {client_id!r}")
        self._items[client_id] = item
        self._order.append(client_id)
        self._added[client_id] = None

    def remove(self, client_id: str) -> None:
        self.get(client_id)
        del self._items[client_id]
        self._order.remove(client_id)
        self._removed[client_id] = None
        self._added.pop(client_id, None)
        self._changed.pop(client_id, None)

    def _mark_changed(self, client_id: str) -> None:
        if client_id not in self._added:
            self._changed[client_id] = None


class SyncedStore:
    """Keyed collection of synced items plus their display order.

    Invariants:
    - ``client_ids()`` holds every key exactly once, in creation order.
    - Client ids are never reused for the lifetime of the store.
    """

    def __init__(self, *, id_allocator: Callable[[], str] | None = None) -> None:
        self._allocate = id_allocator or ClientIdAllocator()
        self._items: dict[str, SyncedItem] = {}
        self._order: list[str] = []
        self._issued: set[str] = set()
        self._subscribers: list[Subscriber] = []

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, client_id: object) -> bool:
        return client_id in self._items

    def __iter__(self) -> Iterator[SyncedItem]:
        return iter(self.items())

    def client_ids(self) -> list[str]:
        return list(self._order)

    def get(self, client_id: str) -> SyncedItem:
        """Return a copy of a single item."""
        try:
            return self._items[client_id].model_copy(deep=True)
        except KeyError:
            raise UnknownItemError(client_id) from None

    def items(self) -> list[SyncedItem]:
        """Return copies of all items in display order."""
        return [self._items[client_id].model_copy(deep=True) for client_id in self._order]

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def allocate_id(self) -> str:
        """Return a client id that this store has never handed out before."""
        for _ in range(_MAX_ID_DRAWS):
            client_id = self._allocate()
            if client_id not in self._issued:
                self._issued.add(client_id)
                return client_id
        raise SyncedError("Could not allocate a fresh client-side id")

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register *callback* for every committed change.

        Returns a function that removes the subscription.
        """
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def commit(self, change: Callable[[StoreDraft], None], *, reason: ChangeReason) -> StoreChange:
        """Apply *change* to a working copy and swap it in atomically.

        If *change* raises, the live state is left untouched.
        """
        draft = StoreDraft(self._items, self._order)
        change(draft)

        self._items = draft._items  # noqa: SLF001
        self._order = draft._order  # noqa: SLF001
        event = StoreChange(
            reason=reason,
            changed=tuple(draft._changed),  # noqa: SLF001
            added=tuple(draft._added),  # noqa: SLF001
            removed=tuple(draft._removed),  # noqa: SLF001
        )
        _logger.debug(
            "Committed %s: changed=%s added=%s removed=%s",
            reason,
            event.changed,
            event.added,
            event.removed,
        )
        self._notify(event)
        return event

    def seed(self, records: Iterable[Mapping[str, Any] | BaseModel]) -> list[str]:
        """Insert server records at ``SYNCED``. Only allowed on an empty store."""
        if self._items:
            raise SyncedError("Store is already seeded")

        seeded = [
            SyncedItem(data=as_record(record), meta=SyncMeta(client_id=self.allocate_id()))
            for record in records
        ]

        def _apply(draft: StoreDraft) -> None:
            for item in seeded:
                draft.insert(item)

        self.commit(_apply, reason=ChangeReason.SEED)
        return [item.client_id for item in seeded]

    def _notify(self, event: StoreChange) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                _logger.debug("Store subscriber failed", exc_info=True)
