"""Dialog requests handed to the presentation layer."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class DialogKind(StrEnum):
    QUESTION = "question"
    INFO = "info"


class Dialog(BaseModel):
    """A modal prompt; the answer is the index of the chosen button."""

    kind: DialogKind = DialogKind.QUESTION
    title: str
    message: str
    detail: str = ""
    buttons: list[str] = Field(default_factory=lambda: ["OK"])
