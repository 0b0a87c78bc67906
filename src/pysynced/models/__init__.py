"""Models for synced records, engine requests and remote results."""

from pysynced.models.item import SyncedItem, SyncMeta, as_record
from pysynced.models.requests import CreationRequest, MutationRequest
from pysynced.models.results import UpdateResult
from pysynced.models.status import NetworkStatus
from pysynced.models.widget import Widget

__all__ = [
    "CreationRequest",
    "MutationRequest",
    "NetworkStatus",
    "SyncMeta",
    "SyncedItem",
    "UpdateResult",
    "Widget",
    "as_record",
]
