"""Optimistic creations: temporary identity, key splice-in, removal on failure."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pysynced._client.retry import retry_remote
from pysynced._constants import INSERT_ENDPOINT
from pysynced.exceptions import RemoteCallFailure
from pysynced.models.item import SyncedItem, SyncMeta
from pysynced.models.requests import CreationRequest
from pysynced.models.status import NetworkStatus
from pysynced.state.events import ChangeReason
from pysynced.state.store import StoreDraft

if TYPE_CHECKING:
    from pysynced.client import SyncClient

_logger = logging.getLogger(__name__)


def _extract_key(rows: list[dict[str, Any]], key_field: str) -> Any:
    """Pull the server-assigned key out of an insert response."""
    if not rows:
        raise RemoteCallFailure("Insert returned no rows", endpoint=INSERT_ENDPOINT)
    key = rows[0].get(key_field)
    if key is None:
        raise RemoteCallFailure(f"Inserted row has no {key_field!r}", endpoint=INSERT_ENDPOINT)
    return key


def _outgoing_record(new_item: Mapping[str, Any], key_field: str) -> dict[str, Any]:
    return {k: v for k, v in new_item.items() if not (k == key_field and v is None)}


def start_creation(client: SyncClient, request: CreationRequest) -> asyncio.Task[SyncedItem | None]:
    """Insert *request.new_item* under a fresh client id and schedule its persistence."""
    # Fail before the optimistic insert when no loop is running.
    asyncio.get_running_loop()
    store = client.store
    client_id = store.allocate_id()

    data = dict(request.new_item)
    data.setdefault(request.key_field, None)
    item = SyncedItem(data=data, meta=SyncMeta(client_id=client_id, network_status=NetworkStatus.SENT_REQUEST))

    store.commit(lambda draft: draft.insert(item), reason=ChangeReason.INSERT)
    return client._spawn(_synchronize(client, request, client_id))  # noqa: SLF001


async def _synchronize(client: SyncClient, request: CreationRequest, client_id: str) -> SyncedItem | None:
    store = client.store
    record = _outgoing_record(request.new_item, request.key_field)

    async def _insert() -> Any:
        rows = await client.remote.transactional_insert(record, request.request_template)
        if isinstance(rows, RemoteCallFailure):
            return rows
        return _extract_key(rows, request.key_field)

    def _set_status(status: NetworkStatus, reason: ChangeReason) -> None:
        store.commit(lambda draft: draft.set_status(client_id, status), reason=reason)

    result = await retry_remote(
        _insert,
        endpoint=INSERT_ENDPOINT,
        description=f"Creation of item {client_id}",
        max_attempts=client.config.max_attempts,
        backoff=client.new_backoff(),
        sleep=client.sleep,
        on_error=lambda _failure: _set_status(NetworkStatus.GOT_ERROR, ChangeReason.ERROR),
        on_retry=lambda: _set_status(NetworkStatus.SENT_RETRY, ChangeReason.RETRY),
    )

    if not isinstance(result, RemoteCallFailure):

        def _confirm(draft: StoreDraft) -> None:
            draft.set_field(client_id, request.key_field, result)
            draft.set_status(client_id, NetworkStatus.SYNCED)

        store.commit(_confirm, reason=ChangeReason.SYNCED)
        return store.get(client_id)

    _set_status(NetworkStatus.FAILED, ChangeReason.FAILED)
    await client.sleep(client.config.removal_delay)

    def _remove(draft: StoreDraft) -> None:
        if client_id in draft:
            draft.remove(client_id)

    _logger.warning("Removing item %s after failed creation", client_id)
    store.commit(_remove, reason=ChangeReason.REMOVE)
    client._remember_failed_creation(request)  # noqa: SLF001
    return None
