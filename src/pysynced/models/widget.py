"""Sample domain record used by the demo script and tests."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class Widget(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: int | None = None
    description: str
    active: bool = False
