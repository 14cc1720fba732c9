"""Presenter that exposes dialogs and device lists to HTTP clients."""

from __future__ import annotations

import asyncio

from plugndump.core.presenter import WorkflowEvent
from plugndump.models.device import DeviceDescriptor
from plugndump.models.dialog import Dialog
from plugndump.utils.logging import get_logger

logger = get_logger(__name__)


class ApiPresenter:
    """Holds the pending dialog until a client posts the answer."""

    def __init__(self) -> None:
        self.devices: list[DeviceDescriptor] = []
        self.last_event: WorkflowEvent | None = None
        self.reveal_requested = False
        self._dialog_id = 0
        self._pending: tuple[int, Dialog, asyncio.Future[int]] | None = None

    async def prompt(self, dialog: Dialog) -> int:
        """Publish *dialog* and wait for a client's answer.

        A dialog still pending when a new one arrives is answered with its
        last button (the decline choice for questions).
        """
        if self._pending is not None:
            old_id, old_dialog, old_future = self._pending
            if not old_future.done():
                old_future.set_result(max(len(old_dialog.buttons) - 1, 0))
            logger.info("dialog_superseded", dialog_id=old_id, title=old_dialog.title)
        self._dialog_id += 1
        dialog_id = self._dialog_id
        future: asyncio.Future[int] = asyncio.get_running_loop().create_future()
        self._pending = (dialog_id, dialog, future)
        logger.info("dialog_pending", dialog_id=dialog_id, title=dialog.title)
        try:
            return await future
        finally:
            if self._pending is not None and self._pending[0] == dialog_id:
                self._pending = None

    def pending(self) -> tuple[int, Dialog] | None:
        if self._pending is None:
            return None
        dialog_id, dialog, _future = self._pending
        return dialog_id, dialog

    def answer(self, dialog_id: int, choice: int) -> None:
        """Resolve the pending dialog.

        Raises:
            LookupError: No pending dialog with *dialog_id*.
            ValueError: *choice* is not a button index.
        """
        if self._pending is None or self._pending[0] != dialog_id:
            raise LookupError(f"No pending dialog {dialog_id}")
        _id, dialog, future = self._pending
        if not 0 <= choice < len(dialog.buttons):
            raise ValueError(f"Choice must be between 0 and {len(dialog.buttons) - 1}")
        if not future.done():
            future.set_result(choice)
        logger.info("dialog_answered", dialog_id=dialog_id, choice=choice)

    def reveal(self) -> None:
        self.reveal_requested = True

    def publish_devices(self, devices: list[DeviceDescriptor]) -> None:
        self.devices = list(devices)

    def notify(self, event: WorkflowEvent) -> None:
        self.last_event = event
