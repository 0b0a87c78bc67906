"""Pydantic request models for engine entrypoints.

These models provide a consistent "validate → normalize → execute" flow.
They are used internally by :class:`pysynced.client.SyncClient` and are
also what ``retry_failed_mutations`` / ``retry_failed_creations`` replay.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _EngineRequest(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    key_field: str
    request_template: str

    @field_validator("key_field", "request_template")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("must be non-empty")
        return value


class MutationRequest(_EngineRequest):
    """Set ``mutated_field`` to ``new_value`` on a batch of items."""

    client_ids: tuple[str, ...] = Field(..., min_length=1)
    mutated_field: str
    new_value: Any = None

    @field_validator("client_ids")
    @classmethod
    def _dedupe_ids(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(value))

    @field_validator("mutated_field")
    @classmethod
    def _field_non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("mutated_field must be non-empty")
        return value


class CreationRequest(_EngineRequest):
    """Insert ``new_item`` optimistically and persist it remotely."""

    new_item: dict[str, Any]
