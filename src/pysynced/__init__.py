"""pysynced - optimistic, retrying synchronization of locally mirrored records."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pysynced")
except PackageNotFoundError:
    __version__ = "0+local"
from pysynced._backoff import Backoff, delay_for
from pysynced._ids import WIDE_ALPHABET, ClientIdAllocator
from pysynced._transport import HttpRemote
from pysynced.client import SyncClient
from pysynced.config import SyncConfig
from pysynced.exceptions import (
    RemoteCallFailure,
    RemoteTransportError,
    SyncedConfigError,
    SyncedError,
    UnknownItemError,
)
from pysynced.models import (
    CreationRequest,
    MutationRequest,
    NetworkStatus,
    SyncedItem,
    SyncMeta,
    UpdateResult,
    Widget,
)
from pysynced.remote import Remote
from pysynced.sqlite import SqliteRemote
from pysynced.state import ChangeReason, StoreChange, StoreDraft, SyncedStore

__all__ = [
    "__version__",
    "Backoff",
    "ChangeReason",
    "ClientIdAllocator",
    "CreationRequest",
    "HttpRemote",
    "MutationRequest",
    "NetworkStatus",
    "Remote",
    "RemoteCallFailure",
    "RemoteTransportError",
    "SqliteRemote",
    "StoreChange",
    "StoreDraft",
    "SyncClient",
    "SyncConfig",
    "SyncMeta",
    "SyncedConfigError",
    "SyncedError",
    "SyncedItem",
    "SyncedStore",
    "UnknownItemError",
    "UpdateResult",
    "WIDE_ALPHABET",
    "Widget",
    "delay_for",
]
