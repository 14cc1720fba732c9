"""Interface to the presentation layer (window, console or HTTP client)."""

from __future__ import annotations

from enum import StrEnum
from typing import Protocol

from plugndump.models.device import DeviceDescriptor
from plugndump.models.dialog import Dialog, DialogKind
from plugndump.utils.logging import get_logger

logger = get_logger(__name__)


class WorkflowEvent(StrEnum):
    """Workflow notifications that have no progress step of their own."""
    WAITING_FOR_REPLUG = "waiting-for-replug"
    AUTO_CLEARING_LOGS = "auto-clearing-logs"


class Presenter(Protocol):
    """What the core needs from whoever shows things to the operator."""

    async def prompt(self, dialog: Dialog) -> int:
        """Show *dialog* and return the index of the chosen button."""
        ...

    def reveal(self) -> None:
        """Bring a hidden UI surface to the front; no-op if already visible."""
        ...

    def publish_devices(self, devices: list[DeviceDescriptor]) -> None:
        """Replace the displayed list of attached flight controllers."""
        ...

    def notify(self, event: WorkflowEvent) -> None:
        ...


class HeadlessPresenter:
    """Presenter for silent runs: nothing is shown and questions are declined."""

    def __init__(self) -> None:
        self.devices: list[DeviceDescriptor] = []

    async def prompt(self, dialog: Dialog) -> int:
        choice = 1 if dialog.kind == DialogKind.QUESTION and len(dialog.buttons) > 1 else 0
        logger.info("dialog_auto_answered", title=dialog.title, choice=choice)
        return choice

    def reveal(self) -> None:
        pass

    def publish_devices(self, devices: list[DeviceDescriptor]) -> None:
        self.devices = list(devices)

    def notify(self, event: WorkflowEvent) -> None:
        logger.info("workflow_event", event=event.value)
