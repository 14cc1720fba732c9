"""Auto-extraction and replug-to-erase workflow state.

After an automatic extraction the operator is asked whether the FC's logs
should be erased. Erasing needs the FC back in normal CLI mode, which only a
physical unplug/replug achieves after MSC mode, so an accepted erase waits
for the detection loop to see the device come back.
"""

from __future__ import annotations

import time
from enum import StrEnum
from typing import Callable

from plugndump.core.presenter import Presenter, WorkflowEvent
from plugndump.models.dialog import Dialog, DialogKind
from plugndump.utils.logging import get_logger

logger = get_logger(__name__)

ERASE_QUESTION = Dialog(
    kind=DialogKind.QUESTION,
    title="Clear Blackbox Logs?",
    message="Auto-extraction completed successfully!",
    detail=(
        "Would you like to clear the blackbox logs from your flight controller? "
        "This will require unplugging and reconnecting your FC."
    ),
    buttons=["Yes, Clear Logs", "No, Keep Logs"],
)

REPLUG_INSTRUCTIONS = Dialog(
    kind=DialogKind.INFO,
    title="Unplug Your Flight Controller",
    message="Please unplug your flight controller now",
    detail=(
        "Unplug your flight controller's USB cable, wait 2 seconds, then plug it "
        "back in. The app will automatically detect the reconnection and clear the logs."
    ),
    buttons=["OK, I understand"],
)


class WorkflowPhase(StrEnum):
    IDLE = "idle"
    AUTO_EXTRACTED = "auto_extracted"
    AWAITING_REPLUG = "awaiting_replug"


class WorkflowState:
    """Process-wide workflow record.

    The phase is a single tagged value so "auto-extracted" and "awaiting
    replug" can never both be set. ``cancelled`` holds for ``grace`` seconds
    after :meth:`reset`.
    """

    def __init__(self, grace: float = 1.0, clock: Callable[[], float] = time.monotonic) -> None:
        self._grace = grace
        self._clock = clock
        self._phase = WorkflowPhase.IDLE
        self._last_port: str | None = None
        self._cancelled_until: float | None = None

    @property
    def phase(self) -> WorkflowPhase:
        return self._phase

    @property
    def was_auto_extracted(self) -> bool:
        return self._phase == WorkflowPhase.AUTO_EXTRACTED

    @property
    def awaiting_log_clear(self) -> bool:
        return self._phase == WorkflowPhase.AWAITING_REPLUG

    @property
    def last_extracted_port(self) -> str | None:
        return self._last_port

    @property
    def cancelled(self) -> bool:
        return self._cancelled_until is not None and self._clock() < self._cancelled_until

    def mark_auto_extracted(self, port: str) -> None:
        self._phase = WorkflowPhase.AUTO_EXTRACTED
        self._last_port = port
        logger.info("workflow_auto_extract", port=port)

    def await_replug(self, port: str) -> bool:
        """Start waiting for the replug; only valid right after an auto-extraction."""
        if self._phase != WorkflowPhase.AUTO_EXTRACTED:
            logger.warning("workflow_await_replug_rejected", phase=self._phase.value)
            return False
        self._phase = WorkflowPhase.AWAITING_REPLUG
        self._last_port = port
        logger.info("workflow_awaiting_replug", port=port)
        return True

    def finish_auto_extraction(self) -> None:
        if self._phase == WorkflowPhase.AUTO_EXTRACTED:
            self._phase = WorkflowPhase.IDLE

    def take_replug(self, new_ports: list[str]) -> str | None:
        """Consume the awaited replug if *new_ports* is it.

        Returns the port to erase, or None. A replug seen while cancelled
        ends the wait without erasing. Several simultaneous new devices leave
        the wait in place.
        """
        if self._phase != WorkflowPhase.AWAITING_REPLUG:
            return None
        if self.cancelled:
            logger.info("workflow_replug_cancelled")
            self._phase = WorkflowPhase.IDLE
            return None
        if len(new_ports) != 1:
            return None
        self._phase = WorkflowPhase.IDLE
        logger.info("workflow_replug_detected", port=new_ports[0])
        return new_ports[0]

    def reset(self) -> None:
        self._phase = WorkflowPhase.IDLE
        self._last_port = None
        self._cancelled_until = self._clock() + self._grace
        logger.info("workflow_reset", grace=self._grace)

    def as_dict(self) -> dict[str, object]:
        return {
            "phase": self._phase.value,
            "was_auto_extracted": self.was_auto_extracted,
            "awaiting_log_clear": self.awaiting_log_clear,
            "last_extracted_port": self._last_port,
            "cancelled": self.cancelled,
        }


class WorkflowCoordinator:
    """Runs the post-extraction erase prompt."""

    def __init__(self, state: WorkflowState, presenter: Presenter) -> None:
        self._state = state
        self._presenter = presenter

    @property
    def state(self) -> WorkflowState:
        return self._state

    async def post_extraction_prompt(self, port: str) -> bool:
        """Ask whether to erase after an auto-extraction.

        Returns True when the workflow now waits for the replug.
        """
        if not self._state.was_auto_extracted:
            return False
        try:
            choice = await self._presenter.prompt(ERASE_QUESTION)
            if choice != 0:
                logger.info("erase_declined", port=port)
                return False
            if not self._state.await_replug(port):
                return False
            await self._presenter.prompt(REPLUG_INSTRUCTIONS)
            self._presenter.notify(WorkflowEvent.WAITING_FOR_REPLUG)
            return True
        finally:
            self._state.finish_auto_extraction()
