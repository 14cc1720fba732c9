"""Serial device descriptors and per-tick snapshots."""

from __future__ import annotations

from pydantic import BaseModel, Field

# STMicroelectronics USB vendor ID used by STM32 flight controllers
FC_VENDOR_ID = "0483"


class DeviceDescriptor(BaseModel):
    """One enumerated serial endpoint."""
    model_config = {"frozen": True}

    path: str = Field(description="Serial port path, e.g. COM3 or /dev/ttyACM0")
    vendor_id: str | None = Field(default=None, description="USB vendor ID as 4 hex digits")
    product_id: str | None = Field(default=None, description="USB product ID as 4 hex digits")
    friendly_name: str | None = Field(default=None, description="OS-reported description")
    manufacturer: str | None = None
    serial_number: str | None = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DeviceDescriptor):
            return NotImplemented
        return self.path == other.path

    def __hash__(self) -> int:
        return hash(self.path)

    def matches_vendor(self, vendor_id: str = FC_VENDOR_ID) -> bool:
        """Case-insensitive exact match of the USB vendor ID."""
        return self.vendor_id is not None and self.vendor_id.upper() == vendor_id.upper()


class DeviceSnapshot(BaseModel):
    """Devices observed at a single poll tick."""
    model_config = {"frozen": True}

    devices: tuple[DeviceDescriptor, ...] = ()

    @property
    def paths(self) -> list[str]:
        return sorted(d.path for d in self.devices)

    def differs_from(self, other: DeviceSnapshot) -> bool:
        return self.paths != other.paths

    def flight_controllers(self, vendor_id: str = FC_VENDOR_ID) -> list[DeviceDescriptor]:
        return [d for d in self.devices if d.matches_vendor(vendor_id)]

    def new_flight_controllers(
        self, previous: DeviceSnapshot, vendor_id: str = FC_VENDOR_ID,
    ) -> list[DeviceDescriptor]:
        """Flight controllers present now whose path was absent in *previous*."""
        known = {d.path for d in previous.flight_controllers(vendor_id)}
        return [d for d in self.flight_controllers(vendor_id) if d.path not in known]
