"""Trace model"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class Branch(BaseModel):
    """Position of a sub-pipeline within its parent brick."""

    key: str
    counter: int = 0


class TraceRecord(BaseModel):
    """Entry or exit record for a single step execution."""

    run_id: str
    extension_id: str | None = None
    brick_id: str
    brick_instance_id: str | None = None
    branches: list[Branch] = []
    is_entry: bool = False

    rendered_args: Any = None
    render_error: dict[str, Any] | None = None
    output_key: str | None = None
    output: Any = None
    error: dict[str, Any] | None = None
    skipped_run: bool = False

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_exit(self) -> bool:
        return not self.is_entry
