"""Progress events reported to the presentation layer."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class Step(StrEnum):
    """Workflow step a progress event belongs to."""
    CONNECT = "connect"
    CLI = "cli"
    DUMP = "dump"
    MSC = "msc"
    COPY = "copy"
    COMPLETE = "complete"
    AUTO_EXTRACT = "auto-extract"


class Status(StrEnum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ERROR = "error"


class ProgressEvent(BaseModel):
    """A single ``{step, status, message, data}`` progress report."""

    seq: int = Field(default=0, description="Monotonic sequence number")
    step: Step
    status: Status
    message: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
