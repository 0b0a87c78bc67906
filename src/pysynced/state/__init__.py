"""State/store layer.

This package is the single source of truth for the locally mirrored records.
Every engine writes through :meth:`SyncedStore.commit`, so observers only
ever see whole batches.
"""

from pysynced.state.events import ChangeReason, StoreChange
from pysynced.state.store import StoreDraft, SyncedStore

__all__ = ["ChangeReason", "StoreChange", "StoreDraft", "SyncedStore"]
