"""Top-level service wiring detection, extraction, erase and workflow.

This is the object the CLI and the HTTP API talk to. It owns the single
event-loop-bound state: the session guard, the workflow record and the
background tasks.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Any, Awaitable, Callable

from plugndump.config import AppConfig, SettingsStore, Timings, resolve_backup_root
from plugndump.core.detection import DetectionLoop
from plugndump.core.drives import DriveLocator
from plugndump.core.eraser import LogEraser
from plugndump.core.extractor import DumpExtractor
from plugndump.core.presenter import HeadlessPresenter, Presenter
from plugndump.core.progress import ProgressReporter
from plugndump.core.registry import DeviceRegistry
from plugndump.core.session import LinkFactory, SessionGuard
from plugndump.core.workflow import WorkflowCoordinator, WorkflowState
from plugndump.exceptions import OperationInProgressError
from plugndump.models.device import DeviceDescriptor
from plugndump.models.progress import Status, Step
from plugndump.models.results import EraseResult, ExtractionResult
from plugndump.transport.serial_port import PySerialLink, list_serial_devices
from plugndump.utils.logging import get_logger

logger = get_logger(__name__)


class PlugNDumpService:
    """Extraction, erase and detection for attached flight controllers.

    Usage:
        service = PlugNDumpService(settings_store=SettingsStore())
        await service.start()
        result = await service.extract_data("COM5")
    """

    def __init__(
        self,
        *,
        app_config: AppConfig | None = None,
        settings_store: SettingsStore | None = None,
        presenter: Presenter | None = None,
        reporter: ProgressReporter | None = None,
        timings: Timings | None = None,
        link_factory: LinkFactory = PySerialLink,
        locator: DriveLocator | None = None,
        enumerate_devices: Callable[[], list[DeviceDescriptor]] = list_serial_devices,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.app_config = app_config or AppConfig()
        self.settings_store = settings_store or SettingsStore()
        self.presenter: Presenter = presenter or HeadlessPresenter()
        self.reporter = reporter or ProgressReporter()
        self.timings = timings or Timings()
        self.guard = SessionGuard()
        self.workflow = WorkflowState(grace=self.timings.reset_grace, clock=clock)
        self.registry = DeviceRegistry(enumerate_devices)
        self.coordinator = WorkflowCoordinator(self.workflow, self.presenter)
        self.extractor = DumpExtractor(
            self.reporter,
            self.backup_root,
            timings=self.timings,
            guard=self.guard,
            link_factory=link_factory,
            locator=locator,
        )
        self.eraser = LogEraser(
            self.reporter,
            timings=self.timings,
            guard=self.guard,
            link_factory=link_factory,
        )
        self.detection = DetectionLoop(
            self.registry,
            self.workflow,
            self.presenter,
            auto_extract_enabled=lambda: self.settings_store.settings.auto_extract_on_detection,
            on_extract=self._auto_extract,
            on_erase=self.clear_blackbox_logs,
            schedule=self.schedule,
            timings=self.timings,
        )
        self._tasks: set[asyncio.Task] = set()
        self._operation: str | None = None
        self._current_port: str | None = None
        self._last_result: ExtractionResult | EraseResult | None = None

    # --- Background tasks ---

    def spawn(self, coro: Awaitable[Any], name: str | None = None) -> asyncio.Task:
        """Run *coro* as a tracked task whose failure is logged."""
        task = asyncio.ensure_future(coro)
        if name:
            task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "background_task_failed",
                task=task.get_name(),
                error=type(exc).__name__,
                message=str(exc),
            )

    def schedule(self, delay: float, action: Callable[[], Awaitable[Any]]) -> asyncio.Task:
        """Run *action* after *delay* seconds."""

        async def _delayed() -> Any:
            await asyncio.sleep(delay)
            return await action()

        return self.spawn(_delayed())

    async def wait_idle(self) -> None:
        """Wait until every scheduled or spawned task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def start(self) -> None:
        """Start device detection and the launch-time auto-extraction."""
        self.detection.start()
        port = self.app_config.auto_extract_port
        if port:
            self.schedule(self.timings.startup_extract_delay, lambda: self._startup_extract(port))
        logger.info("service_started", auto_extract_port=port)

    async def stop(self) -> None:
        await self.detection.stop()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        for port in self.guard.active_ports():
            await self.guard.close(port)
        logger.info("service_stopped")

    # --- Operations ---

    def backup_root(self) -> Path:
        return resolve_backup_root(self.app_config, self.settings_store.settings)

    @property
    def is_running(self) -> bool:
        return self._operation is not None

    @property
    def last_backup_path(self) -> str | None:
        return self.reporter.last_backup_path

    def _begin(self, operation: str, port: str) -> None:
        if self._operation is not None:
            raise OperationInProgressError(
                f"Cannot {operation} on {port}: {self._operation} on {self._current_port} in progress"
            )
        self._operation = operation
        self._current_port = port

    def _end(self) -> None:
        self._operation = None
        self._current_port = None

    async def extract_data(self, port: str, auto: bool = False) -> ExtractionResult:
        """Dump the FC configuration and copy its blackbox logs.

        Raises:
            OperationInProgressError: If an extraction or erase is running.
        """
        self._begin("extract", port)
        return await self._extract(port, auto)

    def start_extract(self, port: str) -> asyncio.Task:
        """Claim the service for an extraction and run it in the background."""
        self._begin("extract", port)
        return self.spawn(self._extract(port, False), name=f"extract:{port}")

    async def _extract(self, port: str, auto: bool) -> ExtractionResult:
        try:
            result = await self.extractor.run(port, auto=auto)
        finally:
            self._end()
        self._last_result = result

        if auto and result.succeeded and self.workflow.was_auto_extracted:
            prompt_port = self.workflow.last_extracted_port or port
            self.schedule(
                self.timings.completion_prompt_delay,
                lambda: self.coordinator.post_extraction_prompt(prompt_port),
            )
        elif auto:
            self.workflow.finish_auto_extraction()
        return result

    async def clear_blackbox_logs(self, port: str) -> EraseResult:
        """Erase the blackbox flash of the FC on *port*.

        Raises:
            OperationInProgressError: If an extraction or erase is running.
        """
        self._begin("clear logs", port)
        return await self._clear(port)

    def start_clear(self, port: str) -> asyncio.Task:
        """Claim the service for an erase and run it in the background."""
        self._begin("clear logs", port)
        return self.spawn(self._clear(port), name=f"clear:{port}")

    async def _clear(self, port: str) -> EraseResult:
        try:
            result = await self.eraser.run(port)
        finally:
            self._end()
        self._last_result = result
        return result

    async def request_device_scan(self) -> list[DeviceDescriptor]:
        """Enumerate now and publish the attached flight controllers."""
        fcs = await self.registry.flight_controllers()
        self.presenter.publish_devices(fcs)
        return fcs

    async def reset_workflow(self) -> None:
        """Abort pending workflow state and close the tracked device's session."""
        port = self._current_port
        if port is not None and await self.guard.close(port):
            logger.info("reset_closed_session", port=port)
        self.workflow.reset()

    def extraction_status(self) -> dict[str, Any]:
        return {
            "is_running": self.is_running,
            "operation": self._operation,
            "port": self._current_port,
            "last_result": self._last_result.model_dump() if self._last_result else None,
            "last_backup_path": self.last_backup_path,
            "workflow": self.workflow.as_dict(),
        }

    async def _auto_extract(self, port: str) -> ExtractionResult | None:
        if self.is_running:
            logger.warning("auto_extract_busy", port=port, operation=self._operation)
            self.workflow.finish_auto_extraction()
            return None
        self.presenter.reveal()
        return await self.extract_data(port, auto=True)

    async def _startup_extract(self, port: str) -> ExtractionResult:
        self.reporter.report(Step.AUTO_EXTRACT, Status.ACTIVE, "Auto-extraction mode activated")
        return await self.extract_data(port)
