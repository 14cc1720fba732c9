"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from fakes import FakeFlightController
from plugndump.config import Timings
from plugndump.core.drives import DriveLocator


@pytest.fixture
def fast_timings():
    """Timings with every delay removed and short protocol timeouts."""
    return Timings(
        poll_interval=0.0,
        initial_scan_delay=0.0,
        settle_delay=0.0,
        msc_close_delay=0.0,
        mount_settle_delay=0.0,
        completion_prompt_delay=0.0,
        reset_grace=1.0,
        startup_extract_delay=0.0,
        handshake_timeout=1.0,
        dump_timeout=1.0,
        command_timeout=1.0,
    )


@pytest.fixture
def device():
    return FakeFlightController()


@pytest.fixture
def media_root(tmp_path):
    """Mount root holding an unrelated USB stick and an FC volume with one log."""
    root = tmp_path / "media"
    (root / "USB STICK" / "LOGS").mkdir(parents=True)
    (root / "USB STICK" / "LOGS" / "OTHER.BBL").write_bytes(b"not ours")
    logs = root / "BETAFLT" / "LOGS"
    logs.mkdir(parents=True)
    (logs / "LOG0001.BBL").write_bytes(b"H Product:Blackbox flight data recorder\n")
    return root


@pytest.fixture
def locator(media_root: Path):
    return DriveLocator(
        candidates=lambda: sorted(media_root.iterdir()),
        label_reader=lambda path: path.name,
    )


@pytest.fixture
def backup_root(tmp_path):
    return tmp_path / "backups"
