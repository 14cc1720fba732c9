"""pyserial-backed serial link and port enumeration."""

from __future__ import annotations

import asyncio

import serial
from serial.tools.list_ports import comports

from plugndump.exceptions import ConnectError
from plugndump.models.device import DeviceDescriptor
from plugndump.transport.base import SerialConfig, SerialLink
from plugndump.utils.logging import get_logger

logger = get_logger(__name__)


class PySerialLink(SerialLink):
    """Serial link over a pyserial ``Serial`` object.

    Blocking pyserial calls run in a worker thread via ``asyncio.to_thread``.
    """

    def __init__(self, config: SerialConfig) -> None:
        super().__init__(config)
        self._serial: serial.Serial | None = None

    @property
    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    async def open(self) -> None:
        if self.is_open:
            return
        logger.info("serial_opening", port=self._config.port, baud=self._config.baud_rate)
        try:
            self._serial = await asyncio.to_thread(
                serial.Serial,
                port=self._config.port,
                baudrate=self._config.baud_rate,
                timeout=self._config.read_timeout,
                write_timeout=2.0,
            )
        except (serial.SerialException, OSError, ValueError) as exc:
            raise ConnectError(f"Failed to open {self._config.port}: {exc}") from exc
        logger.info("serial_opened", port=self._config.port)

    async def write(self, data: bytes) -> None:
        ser = self._require_open()
        try:
            await asyncio.to_thread(self._write_all, ser, data)
        except (serial.SerialException, OSError) as exc:
            raise ConnectError(f"Write to {self._config.port} failed: {exc}") from exc

    async def read(self) -> bytes:
        ser = self._require_open()
        try:
            return await asyncio.to_thread(self._read_chunk, ser)
        except (serial.SerialException, OSError, TypeError) as exc:
            # pyserial raises TypeError when the port is closed mid-read
            raise ConnectError(f"Read from {self._config.port} failed: {exc}") from exc

    async def close(self) -> None:
        if self._serial is None:
            return
        ser, self._serial = self._serial, None
        try:
            await asyncio.to_thread(ser.close)
        except (serial.SerialException, OSError):
            logger.warning("serial_close_error", port=self._config.port)
        logger.info("serial_closed", port=self._config.port)

    def _require_open(self) -> serial.Serial:
        if self._serial is None or not self._serial.is_open:
            raise ConnectError(f"Port {self._config.port} is not open")
        return self._serial

    @staticmethod
    def _write_all(ser: serial.Serial, data: bytes) -> None:
        ser.write(data)
        ser.flush()

    @staticmethod
    def _read_chunk(ser: serial.Serial) -> bytes:
        data = ser.read(1)
        if data and ser.in_waiting:
            data += ser.read(ser.in_waiting)
        return data


def _hex_id(value: int | None) -> str | None:
    return f"{value:04X}" if value is not None else None


def list_serial_devices() -> list[DeviceDescriptor]:
    """Enumerate serial ports visible to the OS."""
    return [
        DeviceDescriptor(
            path=p.device,
            vendor_id=_hex_id(p.vid),
            product_id=_hex_id(p.pid),
            friendly_name=p.description or None,
            manufacturer=p.manufacturer,
            serial_number=p.serial_number,
        )
        for p in comports()
    ]
