from __future__ import annotations

import pytest
from conftest import WIDGETS, FakeRemote, RecordingSleep

from pysynced.models.status import NetworkStatus
from pysynced.models.widget import Widget
from pysynced.state.events import ChangeReason, StoreChange

INSERT_WIDGET = "INSERT INTO widgets (description, active) VALUES (@description, @active) RETURNING *"


def _create(client, new_item):
    return client.run_synced_creation(new_item, key_field="id", request_template=INSERT_WIDGET)


@pytest.mark.asyncio
async def test_creation_takes_server_key(make_client) -> None:
    remote = FakeRemote(insert_rows=[{"id": 42, "description": "foo widget", "active": True}])
    client = make_client(remote)

    task = _create(client, {"description": "foo widget", "active": True})

    (client_id,) = client.store.client_ids()
    pending = client.store.get(client_id)
    assert pending.network_status is NetworkStatus.SENT_REQUEST
    assert pending.data == {"description": "foo widget", "active": True, "id": None}

    synced = await task
    assert synced is not None
    assert synced.client_id == client_id
    assert synced.data == {"id": 42, "description": "foo widget", "active": True}
    assert synced.network_status is NetworkStatus.SYNCED
    assert remote.insert_calls == [({"description": "foo widget", "active": True}, INSERT_WIDGET)]


@pytest.mark.asyncio
async def test_creation_appends_after_seeded_items(make_client) -> None:
    client = make_client(FakeRemote(next_id=4))
    seeded = client.store.seed(WIDGETS)

    created = await _create(client, Widget(description="fourth widget"))

    assert created is not None
    assert client.store.client_ids() == [*seeded, created.client_id]
    assert created.data["id"] == 4


@pytest.mark.asyncio
async def test_creation_recovers_after_one_failure(make_client, recording_sleep: RecordingSleep) -> None:
    remote = FakeRemote(fail_inserts=1)
    client = make_client(remote)
    reasons: list[ChangeReason] = []
    client.store.subscribe(lambda event: reasons.append(event.reason))

    created = await _create(client, {"description": "flaky", "active": False})

    assert created is not None
    assert created.network_status is NetworkStatus.SYNCED
    assert reasons == [ChangeReason.INSERT, ChangeReason.ERROR, ChangeReason.RETRY, ChangeReason.SYNCED]
    assert len(recording_sleep.delays) == 1


@pytest.mark.asyncio
async def test_exhausted_creation_is_removed_after_grace_delay(make_client, recording_sleep: RecordingSleep) -> None:
    remote = FakeRemote(fail_inserts=100)
    client = make_client(remote, removal_delay=1.5)
    seeded = client.store.seed(WIDGETS[:1])
    statuses: list[NetworkStatus | None] = []
    events: list[StoreChange] = []
    client.store.subscribe(events.append)

    task = _create(client, {"description": "doomed", "active": True})
    (_, client_id) = client.store.client_ids()
    client.store.subscribe(
        lambda _event: statuses.append(
            client.store.get(client_id).network_status if client_id in client.store else None
        )
    )

    assert await task is None

    assert len(remote.insert_calls) == 3
    assert client_id not in client.store
    assert client.store.client_ids() == seeded
    assert statuses[-2:] == [NetworkStatus.FAILED, None]
    assert recording_sleep.delays[-1] == 1.5
    assert events[-1].removed == (client_id,)
    assert client.failed_creations[0].new_item == {"description": "doomed", "active": True}


@pytest.mark.asyncio
async def test_empty_insert_response_counts_as_failure(make_client) -> None:
    remote = FakeRemote(insert_rows=[])
    client = make_client(remote)

    assert await _create(client, {"description": "ghost", "active": False}) is None
    assert len(remote.insert_calls) == 3
    assert len(client.store) == 0


@pytest.mark.asyncio
async def test_row_without_key_counts_as_failure(make_client) -> None:
    remote = FakeRemote(insert_rows=[{"description": "keyless"}])
    client = make_client(remote)

    assert await _create(client, {"description": "keyless", "active": False}) is None
    assert len(remote.insert_calls) == 3


@pytest.mark.asyncio
async def test_retry_failed_creations_starts_fresh_item(make_client) -> None:
    remote = FakeRemote(fail_inserts=3)
    client = make_client(remote)

    assert await _create(client, {"description": "second try", "active": True}) is None
    first_ids = set(client.store._issued)  # noqa: SLF001

    (task,) = client.retry_failed_creations()
    created = await task

    assert created is not None
    assert created.client_id not in first_ids
    assert created.data["id"] == 42
    assert client.failed_creations == ()
    assert len(client.store) == 1


@pytest.mark.asyncio
async def test_drain_waits_for_every_operation(make_client) -> None:
    remote = FakeRemote(fail_inserts=1)
    client = make_client(remote)
    client.store.seed(WIDGETS)

    _create(client, {"description": "a", "active": True})
    _create(client, {"description": "b", "active": True})
    client.run_synced_mutation(
        client.store.client_ids()[:3],
        key_field="id",
        mutated_field="active",
        new_value=True,
        request_template="UPDATE widgets SET active = 1 WHERE id = ?",
    )
    assert len(client.pending) == 3

    await client.drain()

    assert client.pending == frozenset()
    assert all(item.network_status is NetworkStatus.SYNCED for item in client.store)
    assert len(client.store) == 5
