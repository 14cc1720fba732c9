"""Unit tests for the pyserial link and port enumeration."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

import pytest
import serial

from plugndump.exceptions import ConnectError
from plugndump.transport.base import SerialConfig
from plugndump.transport.serial_port import PySerialLink, list_serial_devices


def _port_info(device, vid=None, pid=None, description="n/a"):
    info = MagicMock()
    info.device = device
    info.vid = vid
    info.pid = pid
    info.description = description
    info.manufacturer = "STMicroelectronics" if vid else None
    info.serial_number = None
    return info


class TestListSerialDevices:
    @patch("plugndump.transport.serial_port.comports")
    def test_ids_formatted_as_hex(self, mock_comports):
        mock_comports.return_value = [
            _port_info("/dev/ttyACM0", 0x0483, 0x5740, "STM32 Virtual ComPort"),
        ]

        devices = list_serial_devices()

        assert len(devices) == 1
        assert devices[0].path == "/dev/ttyACM0"
        assert devices[0].vendor_id == "0483"
        assert devices[0].product_id == "5740"
        assert devices[0].friendly_name == "STM32 Virtual ComPort"
        assert devices[0].matches_vendor()

    @patch("plugndump.transport.serial_port.comports")
    def test_port_without_usb_ids(self, mock_comports):
        mock_comports.return_value = [_port_info("/dev/ttyS0")]

        device = list_serial_devices()[0]

        assert device.vendor_id is None
        assert not device.matches_vendor()


class TestPySerialLink:
    @patch("plugndump.transport.serial_port.serial.Serial")
    def test_open_failure_raises_connect_error(self, mock_serial):
        mock_serial.side_effect = serial.SerialException("could not open port COM9")
        link = PySerialLink(SerialConfig(port="COM9"))

        with pytest.raises(ConnectError, match="COM9"):
            asyncio.run(link.open())
        assert not link.is_open

    @patch("plugndump.transport.serial_port.serial.Serial")
    def test_read_collects_waiting_bytes(self, mock_serial):
        port = mock_serial.return_value
        port.is_open = True
        port.read.side_effect = [b"#", b" \r\n"]
        port.in_waiting = 3
        link = PySerialLink(SerialConfig(port="COM5"))

        async def scenario():
            await link.open()
            data = await link.read()
            await link.close()
            return data

        assert asyncio.run(scenario()) == b"# \r\n"
        port.close.assert_called_once()

    @patch("plugndump.transport.serial_port.serial.Serial")
    def test_write_flushes(self, mock_serial):
        port = mock_serial.return_value
        port.is_open = True
        link = PySerialLink(SerialConfig(port="COM5"))

        async def scenario():
            await link.open()
            await link.write(b"#\r")

        asyncio.run(scenario())
        port.write.assert_called_once_with(b"#\r")
        port.flush.assert_called_once()

    def test_read_on_closed_link(self):
        link = PySerialLink(SerialConfig(port="COM5"))

        with pytest.raises(ConnectError, match="not open"):
            asyncio.run(link.read())

    @patch("plugndump.transport.serial_port.serial.Serial")
    def test_read_after_disconnect(self, mock_serial):
        port = mock_serial.return_value
        port.is_open = True
        port.read.side_effect = serial.SerialException("device reports readiness to read but returned no data")
        link = PySerialLink(SerialConfig(port="COM5"))

        async def scenario():
            await link.open()
            await link.read()

        with pytest.raises(ConnectError, match="Read from COM5 failed"):
            asyncio.run(scenario())
