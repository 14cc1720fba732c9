"""Serial transport layer."""

from plugndump.transport.base import SerialConfig, SerialLink
from plugndump.transport.serial_port import PySerialLink, list_serial_devices

__all__ = [
    "PySerialLink",
    "SerialConfig",
    "SerialLink",
    "list_serial_devices",
]
