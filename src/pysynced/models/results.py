"""Remote call result models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class UpdateResult(BaseModel):
    """Outcome of one row of a transactional update."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: Any
    changes: int = 0
    last_row_id: int | None = Field(default=None, alias="lastRowId")
