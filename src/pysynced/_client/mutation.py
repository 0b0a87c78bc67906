"""Optimistic batched mutations with rollback on terminal failure."""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from pysynced._client.retry import retry_remote
from pysynced._constants import UPDATE_ENDPOINT
from pysynced.exceptions import RemoteCallFailure
from pysynced.models.requests import MutationRequest
from pysynced.models.status import NetworkStatus
from pysynced.state.events import ChangeReason
from pysynced.state.store import StoreDraft

if TYPE_CHECKING:
    from pysynced.client import SyncClient

_logger = logging.getLogger(__name__)


def start_mutation(client: SyncClient, request: MutationRequest) -> asyncio.Task[NetworkStatus]:
    """Apply *request* optimistically and schedule its synchronization.

    Raises synchronously for unknown ids and for items without a server key;
    remote failures never escape the returned task.
    """
    # Fail before the optimistic commit when no loop is running.
    asyncio.get_running_loop()
    store = client.store

    keys: list[Any] = []
    for client_id in request.client_ids:
        key = store.get(client_id).data.get(request.key_field)
        if key is None:
            raise ValueError(f"Item {client_id!r} has no {request.key_field!r} yet (creation still pending?)")
        keys.append(key)

    backup: dict[str, Any] = {}

    def _optimistic(draft: StoreDraft) -> None:
        for client_id in request.client_ids:
            backup[client_id] = copy.deepcopy(draft.get(client_id).data.get(request.mutated_field))
            draft.set_field(client_id, request.mutated_field, request.new_value)
            draft.set_status(client_id, NetworkStatus.SENT_REQUEST)

    store.commit(_optimistic, reason=ChangeReason.OPTIMISTIC)
    return client._spawn(_synchronize(client, request, keys, backup))  # noqa: SLF001


async def _synchronize(
    client: SyncClient,
    request: MutationRequest,
    keys: Sequence[Any],
    backup: dict[str, Any],
) -> NetworkStatus:
    store = client.store
    client_ids = request.client_ids

    def _set_status(status: NetworkStatus, reason: ChangeReason) -> None:
        store.commit(lambda draft: draft.set_statuses([c for c in client_ids if c in draft], status), reason=reason)

    result = await retry_remote(
        lambda: client.remote.transactional_update(keys, request.request_template),
        endpoint=UPDATE_ENDPOINT,
        description=f"Update of {request.mutated_field!r} on {len(client_ids)} item(s)",
        max_attempts=client.config.max_attempts,
        backoff=client.new_backoff(),
        sleep=client.sleep,
        on_error=lambda _failure: _set_status(NetworkStatus.GOT_ERROR, ChangeReason.ERROR),
        on_retry=lambda: _set_status(NetworkStatus.SENT_RETRY, ChangeReason.RETRY),
    )

    if not isinstance(result, RemoteCallFailure):
        _set_status(NetworkStatus.SYNCED, ChangeReason.SYNCED)
        return NetworkStatus.SYNCED

    def _rollback(draft: StoreDraft) -> None:
        for client_id in client_ids:
            if client_id not in draft:
                continue
            _logger.warning(
                "Resetting %s of item %s back to %r",
                request.mutated_field,
                client_id,
                backup[client_id],
            )
            draft.set_field(client_id, request.mutated_field, backup[client_id])
            draft.set_status(client_id, NetworkStatus.FAILED)

    store.commit(_rollback, reason=ChangeReason.ROLLBACK)
    client._remember_failed_mutation(request)  # noqa: SLF001
    return NetworkStatus.FAILED
