"""Outcome records for extraction and erase runs."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class ExtractionState(StrEnum):
    """States of the dump extractor."""
    CONNECTING = "connecting"
    CLI_HANDSHAKE = "cli_handshake"
    DUMPING = "dumping"
    SAVING_FILE = "saving_file"
    SWITCHING_TO_MSC = "switching_to_msc"
    MSC_HANDSHAKE = "msc_handshake"
    AWAITING_MOUNT = "awaiting_mount"
    COPYING = "copying"
    DONE = "done"
    ERROR = "error"


class ExtractionResult(BaseModel):
    """Result of one extract run."""

    port: str
    state: ExtractionState = ExtractionState.CONNECTING
    backup_path: str | None = None
    dump_path: str | None = None
    copied_files: list[str] = Field(default_factory=list)
    auto: bool = False
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == ExtractionState.DONE


class EraseResult(BaseModel):
    """Result of one log erase run."""

    port: str
    succeeded: bool = False
    error: str | None = None
