"""Store change notifications.

One :class:`StoreChange` is emitted per commit, after the new state is
visible.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class ChangeReason(StrEnum):
    SEED = "seed"
    OPTIMISTIC = "optimistic"
    SYNCED = "synced"
    ERROR = "error"
    RETRY = "retry"
    ROLLBACK = "rollback"
    FAILED = "failed"
    INSERT = "insert"
    REMOVE = "remove"


class StoreChange(BaseModel):
    """A committed batch of store changes."""

    model_config = ConfigDict(frozen=True)

    reason: ChangeReason
    changed: tuple[str, ...] = ()
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def touched(self) -> tuple[str, ...]:
        """All client ids affected by this change, without duplicates."""
        return tuple(dict.fromkeys((*self.changed, *self.added, *self.removed)))
