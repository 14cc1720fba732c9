"""Progress fan-out to subscribers plus a bounded history buffer."""

from __future__ import annotations

from collections import deque
from typing import Any, Callable

from plugndump.models.progress import ProgressEvent, Status, Step
from plugndump.utils.logging import get_logger

logger = get_logger(__name__)

ProgressListener = Callable[[ProgressEvent], None]


class ProgressReporter:
    """Publishes progress events to registered listeners.

    Listener errors are logged and never interrupt the workflow that
    reported the event.
    """

    def __init__(self, history: int = 500) -> None:
        self._listeners: list[ProgressListener] = []
        self._history: deque[ProgressEvent] = deque(maxlen=history)
        self._seq = 0
        self.last_backup_path: str | None = None

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Register *listener*; returns a function that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def report(
        self,
        step: Step,
        status: Status,
        message: str | None = None,
        **data: Any,
    ) -> ProgressEvent:
        self._seq += 1
        event = ProgressEvent(seq=self._seq, step=step, status=status, message=message, data=data)
        self._history.append(event)
        if step == Step.COMPLETE and status == Status.COMPLETED and "backupPath" in data:
            self.last_backup_path = data["backupPath"]

        logger.info("progress", step=step.value, status=status.value, message=message, **data)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("progress_listener_failed", step=step.value)
        return event

    def since(self, seq: int = 0) -> list[ProgressEvent]:
        """Buffered events with a sequence number greater than *seq*."""
        return [e for e in self._history if e.seq > seq]
