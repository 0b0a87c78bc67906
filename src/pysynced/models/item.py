"""Synced item model: a domain record paired with sync metadata."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pysynced.models.status import NetworkStatus


def as_record(value: Mapping[str, Any] | BaseModel) -> dict[str, Any]:
    """Normalize a domain record (mapping or pydantic model) to a plain dict."""
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, Mapping):
        return copy.deepcopy(dict(value))
    raise TypeError(f"record must be a mapping or a pydantic model, got {type(value).__name__}")


class SyncMeta(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    client_id: str = Field(..., description="Stable local handle, independent of the server key")
    network_status: NetworkStatus = NetworkStatus.SYNCED

    @field_validator("client_id")
    @classmethod
    def _client_id_non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("client_id must be non-empty")
        return value


class SyncedItem(BaseModel):
    """A locally cached record and its synchronization state.

    Instances are replaced, never edited: the store swaps in a new
    ``SyncedItem`` for every change.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    data: dict[str, Any] = Field(default_factory=dict)
    meta: SyncMeta

    @property
    def client_id(self) -> str:
        return self.meta.client_id

    @property
    def network_status(self) -> NetworkStatus:
        return self.meta.network_status

    def with_status(self, status: NetworkStatus) -> SyncedItem:
        return self.model_copy(update={"meta": self.meta.model_copy(update={"network_status": status})})

    def with_field(self, field: str, value: Any) -> SyncedItem:
        return self.model_copy(update={"data": {**self.data, field: value}})
