"""Serial device enumeration filtered to flight controllers."""

from __future__ import annotations

import asyncio
from typing import Callable

from plugndump.models.device import FC_VENDOR_ID, DeviceDescriptor, DeviceSnapshot
from plugndump.transport.serial_port import list_serial_devices
from plugndump.utils.logging import get_logger

logger = get_logger(__name__)


class DeviceRegistry:
    """Enumerates serial devices and keeps the most recent snapshot."""

    def __init__(
        self,
        enumerate_devices: Callable[[], list[DeviceDescriptor]] = list_serial_devices,
        vendor_id: str = FC_VENDOR_ID,
    ) -> None:
        self._enumerate = enumerate_devices
        self._vendor_id = vendor_id
        self._last = DeviceSnapshot()

    @property
    def vendor_id(self) -> str:
        return self._vendor_id

    @property
    def last_snapshot(self) -> DeviceSnapshot:
        return self._last

    async def poll(self) -> DeviceSnapshot:
        """Enumerate attached serial devices."""
        devices = await asyncio.to_thread(self._enumerate)
        self._last = DeviceSnapshot(devices=tuple(devices))
        logger.debug("devices_enumerated", total=len(devices))
        return self._last

    async def flight_controllers(self) -> list[DeviceDescriptor]:
        snapshot = await self.poll()
        return snapshot.flight_controllers(self._vendor_id)
