"""Attach/detach detection loop.

Each tick enumerates serial devices, and when the set of paths changed,
decides between the replug-erase path and the normal path (reveal UI,
optional auto-extraction). Only a single new flight controller ever
triggers an action; several at once are ambiguous.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from plugndump.config import Timings
from plugndump.core.presenter import Presenter, WorkflowEvent
from plugndump.core.registry import DeviceRegistry
from plugndump.core.workflow import WorkflowState
from plugndump.models.device import DeviceDescriptor, DeviceSnapshot
from plugndump.utils.logging import get_logger

logger = get_logger(__name__)

PortAction = Callable[[str], Awaitable[object]]
Scheduler = Callable[[float, Callable[[], Awaitable[object]]], object]


class DetectionLoop:
    """Polls the registry and drives extraction and erase triggers."""

    def __init__(
        self,
        registry: DeviceRegistry,
        workflow: WorkflowState,
        presenter: Presenter,
        *,
        auto_extract_enabled: Callable[[], bool],
        on_extract: PortAction,
        on_erase: PortAction,
        schedule: Scheduler,
        timings: Timings | None = None,
    ) -> None:
        self._registry = registry
        self._workflow = workflow
        self._presenter = presenter
        self._auto_extract_enabled = auto_extract_enabled
        self._on_extract = on_extract
        self._on_erase = on_erase
        self._schedule = schedule
        self._timings = timings or Timings()
        self._snapshot = DeviceSnapshot()
        self._task: asyncio.Task | None = None

    @property
    def snapshot(self) -> DeviceSnapshot:
        return self._snapshot

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def initial_scan(self) -> list[DeviceDescriptor]:
        """Publish flight controllers already attached at start-up.

        They become the baseline and are not treated as new.
        """
        snapshot = await self._registry.poll()
        fcs = snapshot.flight_controllers(self._registry.vendor_id)
        if fcs:
            logger.info("fc_already_connected", ports=[d.path for d in fcs])
        self._presenter.publish_devices(fcs)
        self._snapshot = snapshot
        return fcs

    async def tick(self) -> list[DeviceDescriptor] | None:
        """Run one poll.

        Returns the newly attached flight controllers, or None when the
        device set did not change.
        """
        snapshot = await self._registry.poll()
        previous = self._snapshot
        if not snapshot.differs_from(previous):
            return None

        vendor_id = self._registry.vendor_id
        fcs = snapshot.flight_controllers(vendor_id)
        new_fcs = snapshot.new_flight_controllers(previous, vendor_id)
        logger.info(
            "devices_changed",
            ports=snapshot.paths,
            fcs=[d.path for d in fcs],
            new=[d.path for d in new_fcs],
        )
        if new_fcs:
            self._handle_new(new_fcs)

        self._presenter.publish_devices(fcs)
        self._snapshot = snapshot
        return new_fcs

    def _handle_new(self, new_fcs: list[DeviceDescriptor]) -> None:
        erase_port = self._workflow.take_replug([d.path for d in new_fcs])
        if erase_port is not None:
            logger.info("replug_erase_scheduled", port=erase_port, delay=self._timings.settle_delay)
            self._presenter.notify(WorkflowEvent.AUTO_CLEARING_LOGS)
            self._schedule(self._timings.settle_delay, lambda: self._on_erase(erase_port))
            return

        self._presenter.reveal()
        if self._auto_extract_enabled() and len(new_fcs) == 1:
            port = new_fcs[0].path
            self._workflow.mark_auto_extracted(port)
            logger.info("auto_extract_scheduled", port=port, delay=self._timings.settle_delay)
            self._schedule(self._timings.settle_delay, lambda: self._on_extract(port))
        else:
            logger.info(
                "auto_extract_skipped",
                enabled=self._auto_extract_enabled(),
                new_fcs=len(new_fcs),
            )

    async def run(self) -> None:
        """Poll forever; cancel the task to stop."""
        await asyncio.sleep(self._timings.initial_scan_delay)
        try:
            await self.initial_scan()
        except Exception:
            logger.exception("initial_scan_failed")
        while True:
            await asyncio.sleep(self._timings.poll_interval)
            try:
                await self.tick()
            except Exception:
                logger.exception("detection_tick_failed")

    def start(self) -> asyncio.Task:
        if not self.is_running:
            self._task = asyncio.create_task(self.run(), name="plugndump-detection")
            logger.info("detection_started", interval=self._timings.poll_interval)
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("detection_stopped")
