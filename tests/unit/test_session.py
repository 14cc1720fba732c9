"""Unit tests for the CLI session, completion predicates and session guard."""

from __future__ import annotations

import asyncio

import pytest

from fakes import FakeFlightController
from plugndump.core.session import (
    CliSession,
    SessionGuard,
    SessionState,
    cli_mode_detected,
    dump_complete,
    prompt_returned,
)
from plugndump.exceptions import ConnectError, ProtocolTimeout, SessionBusyError


class TestPredicates:
    def test_banner_enters_cli(self):
        assert cli_mode_detected("\r\nEntering CLI Mode, type 'exit' to return\r\n")

    def test_trailing_prompt_enters_cli(self):
        assert cli_mode_detected("\r\n# ")

    def test_noise_does_not_enter_cli(self):
        assert not cli_mode_detected("$M<\x00\x00")

    def test_prompt_returned_uses_last_chunk(self):
        assert prompt_returned("anything", "Done.\r\n# ")
        assert not prompt_returned("# ", "still working\r\n")

    def test_dump_needs_marker_and_prompt(self):
        assert dump_complete("set x = 1\r\nbatch end\r\n# ", "\r\n# ")

    def test_dump_marker_without_prompt_is_incomplete(self):
        assert not dump_complete("set x = 1\r\nbatch end\r\n", "batch end\r\n")

    def test_dump_prompt_without_marker_is_incomplete(self):
        assert not dump_complete("# version\r\n# ", "# ")


def _open(device: FakeFlightController, guard: SessionGuard | None = None, port: str = "COM5"):
    return CliSession.open(port, link_factory=device.link_factory, guard=guard)


class TestCliSession:
    def test_enter_cli_and_dump(self, device):
        async def scenario():
            session = await _open(device)
            await session.enter_cli(timeout=1.0)
            assert session.state == SessionState.ENTERED
            text = await session.run_command("dump", dump_complete, timeout=1.0)
            await session.close()
            return text

        text = asyncio.run(scenario())

        assert "batch end" in text
        assert "set gyro_lpf1_static_hz = 250" in text
        assert text.strip().endswith("#")
        assert device.writes == [b"#\r", b"dump\r"]

    def test_dump_waits_for_prompt_after_marker(self):
        device = FakeFlightController(replies={
            b"#\r": [b"# "],
            b"dump\r": [b"batch end\r\n"],
        })

        async def scenario():
            session = await _open(device)
            await session.enter_cli(timeout=1.0)
            try:
                await session.run_command("dump", dump_complete, timeout=0.05)
            finally:
                await session.close()

        with pytest.raises(ProtocolTimeout):
            asyncio.run(scenario())

    def test_banner_without_prompt_still_enters(self):
        device = FakeFlightController(replies={b"#\r": [b"\r\nEntering CLI Mode\r\n"]})

        async def scenario():
            session = await _open(device)
            buffer = await session.enter_cli(timeout=1.0, prompt_grace=0.02)
            state = session.state
            await session.close()
            return buffer, state

        buffer, state = asyncio.run(scenario())

        assert "Entering CLI Mode" in buffer
        assert state == SessionState.ENTERED

    def test_silent_device_times_out(self):
        device = FakeFlightController(replies={})

        async def scenario():
            session = await _open(device)
            try:
                await session.enter_cli(timeout=0.05)
            finally:
                await session.close()

        with pytest.raises(ProtocolTimeout, match="CLI prompt"):
            asyncio.run(scenario())

    def test_command_before_cli_rejected(self, device):
        async def scenario():
            session = await _open(device)
            try:
                await session.run_command("dump")
            finally:
                await session.close()

        with pytest.raises(ConnectError, match="CLI mode not entered"):
            asyncio.run(scenario())

    def test_send_does_not_wait(self, device):
        async def scenario():
            session = await _open(device)
            await session.enter_cli(timeout=1.0)
            await session.send("msc")
            await session.close()

        asyncio.run(scenario())
        assert device.writes[-1] == b"msc\r"

    def test_close_is_idempotent(self, device):
        async def scenario():
            session = await _open(device)
            await session.close()
            await session.close()
            return session

        session = asyncio.run(scenario())
        assert session.state == SessionState.CLOSED
        assert not session.is_open


class TestSessionGuard:
    def test_second_session_on_same_port_rejected(self, device):
        guard = SessionGuard()

        async def scenario():
            first = await _open(device, guard)
            try:
                await _open(device, guard)
            finally:
                await first.close()

        with pytest.raises(SessionBusyError):
            asyncio.run(scenario())
        assert guard.active_ports() == []

    def test_port_reusable_after_close(self, device):
        guard = SessionGuard()

        async def scenario():
            first = await _open(device, guard)
            await first.close()
            second = await _open(device, guard)
            ports = guard.active_ports()
            await second.close()
            return ports

        assert asyncio.run(scenario()) == ["COM5"]

    def test_different_ports_coexist(self, device):
        guard = SessionGuard()

        async def scenario():
            a = await _open(device, guard, "COM5")
            b = await _open(device, guard, "COM6")
            ports = guard.active_ports()
            await a.close()
            await b.close()
            return ports

        assert asyncio.run(scenario()) == ["COM5", "COM6"]

    def test_failed_open_releases_port(self):
        guard = SessionGuard()
        device = FakeFlightController(fail_open=True)

        with pytest.raises(ConnectError):
            asyncio.run(_open(device, guard))
        assert guard.get("COM5") is None

    def test_force_close(self, device):
        guard = SessionGuard()

        async def scenario():
            session = await _open(device, guard)
            closed = await guard.close("COM5")
            again = await guard.close("COM5")
            return session, closed, again

        session, closed, again = asyncio.run(scenario())

        assert closed is True
        assert again is False
        assert session.state == SessionState.CLOSED
        assert device.open_links == []
