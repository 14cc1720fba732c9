"""Unit tests for the blackbox log erase."""

from __future__ import annotations

import asyncio
import dataclasses

from fakes import CLI_BANNER_REPLY, FakeFlightController
from plugndump.core.eraser import LogEraser
from plugndump.core.progress import ProgressReporter
from plugndump.models.progress import Status, Step


class TestLogEraser:
    def test_erase(self, device, fast_timings):
        reporter = ProgressReporter()
        eraser = LogEraser(reporter, timings=fast_timings, link_factory=device.link_factory)

        result = asyncio.run(eraser.run("COM5"))

        assert result.succeeded
        assert result.error is None
        assert device.writes == [b"#\r", b"flash_erase\r"]
        assert device.open_links == []
        last = reporter.since()[-1]
        assert (last.step, last.status) == (Step.COMPLETE, Status.COMPLETED)
        assert last.message == "Blackbox logs cleared successfully."

    def test_connect_failure(self, fast_timings):
        reporter = ProgressReporter()
        device = FakeFlightController(fail_open=True)
        eraser = LogEraser(reporter, timings=fast_timings, link_factory=device.link_factory)

        result = asyncio.run(eraser.run("COM5"))

        assert not result.succeeded
        last = reporter.since()[-1]
        assert (last.step, last.status) == (Step.CONNECT, Status.ERROR)
        assert last.message.startswith("Log clearing failed: ")

    def test_erase_never_finishes(self, fast_timings):
        reporter = ProgressReporter()
        device = FakeFlightController(replies={
            b"#\r": [CLI_BANNER_REPLY],
            b"flash_erase\r": [b"Erasing, please wait ... \r\n"],
        })
        timings = dataclasses.replace(fast_timings, command_timeout=0.05)
        eraser = LogEraser(reporter, timings=timings, link_factory=device.link_factory)

        result = asyncio.run(eraser.run("COM5"))

        assert not result.succeeded
        last = reporter.since()[-1]
        assert (last.step, last.status) == (Step.DUMP, Status.ERROR)
        assert device.open_links == []
