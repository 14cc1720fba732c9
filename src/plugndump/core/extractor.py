"""Dump extraction state machine.

Connecting -> CliHandshake -> Dumping -> SavingFile -> SwitchingToMsc ->
MscHandshake -> AwaitingMount -> Copying -> Done, with Error reachable from
every non-terminal state. The CLI session used for the dump is closed before
a fresh session is opened for the ``msc`` command because the FC may reset
its USB transport in between.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable

from plugndump.config import Timings
from plugndump.core.backup import save_dump
from plugndump.core.drives import DriveLocator, copy_blackbox_files
from plugndump.core.progress import ProgressReporter
from plugndump.core.session import (
    DEFAULT_BAUD_RATE,
    CliSession,
    LinkFactory,
    SessionGuard,
    dump_complete,
)
from plugndump.exceptions import PlugNDumpError, ProtocolTimeout
from plugndump.models.progress import Status, Step
from plugndump.models.results import ExtractionResult, ExtractionState
from plugndump.transport.serial_port import PySerialLink
from plugndump.utils.logging import get_logger

logger = get_logger(__name__)

DUMP_COMMAND = "dump"
MSC_COMMAND = "msc"

# Step reported when a prompt wait times out in a given state
_TIMEOUT_STEPS: dict[ExtractionState, Step] = {
    ExtractionState.CLI_HANDSHAKE: Step.CLI,
    ExtractionState.DUMPING: Step.DUMP,
    ExtractionState.MSC_HANDSHAKE: Step.MSC,
}


class DumpExtractor:
    """Runs one dump + MSC copy extraction against a flight controller."""

    def __init__(
        self,
        reporter: ProgressReporter,
        backup_root: Callable[[], Path],
        *,
        timings: Timings | None = None,
        guard: SessionGuard | None = None,
        link_factory: LinkFactory = PySerialLink,
        locator: DriveLocator | None = None,
        baud_rate: int = DEFAULT_BAUD_RATE,
    ) -> None:
        self._reporter = reporter
        self._backup_root = backup_root
        self._timings = timings or Timings()
        self._guard = guard or SessionGuard()
        self._link_factory = link_factory
        self._locator = locator or DriveLocator()
        self._baud_rate = baud_rate
        self._state = ExtractionState.DONE

    @property
    def state(self) -> ExtractionState:
        return self._state

    def _enter(self, state: ExtractionState, port: str) -> None:
        logger.debug("extraction_state", port=port, state=state.value, previous=self._state.value)
        self._state = state

    async def _open(self, port: str) -> CliSession:
        return await CliSession.open(
            port,
            self._baud_rate,
            link_factory=self._link_factory,
            guard=self._guard,
        )

    async def run(self, port: str, auto: bool = False) -> ExtractionResult:
        """Extract the dump and blackbox files from the FC on *port*.

        Errors are reported as progress events and recorded on the returned
        result; they are not raised.
        """
        report = self._reporter.report
        timings = self._timings
        result = ExtractionResult(port=port, auto=auto)
        session: CliSession | None = None
        logger.info("extraction_started", port=port, auto=auto)

        try:
            self._enter(ExtractionState.CONNECTING, port)
            report(Step.CONNECT, Status.ACTIVE, f"Connecting to FC on {port}...")
            session = await self._open(port)
            report(Step.CONNECT, Status.COMPLETED, "Connection established")

            self._enter(ExtractionState.CLI_HANDSHAKE, port)
            report(Step.CLI, Status.ACTIVE, "Entering CLI mode...")
            await session.enter_cli(timings.handshake_timeout)
            report(Step.CLI, Status.COMPLETED, "CLI mode activated")

            self._enter(ExtractionState.DUMPING, port)
            report(Step.DUMP, Status.ACTIVE, "Extracting configuration dump...")
            dump_text = await session.run_command(DUMP_COMMAND, dump_complete, timings.dump_timeout)
            report(Step.DUMP, Status.COMPLETED, "Configuration dump extracted")

            self._enter(ExtractionState.SAVING_FILE, port)
            dump_path = await save_dump(self._backup_root(), dump_text)
            backup_dir = dump_path.parent
            result.dump_path = str(dump_path)
            result.backup_path = str(backup_dir)
            report(Step.DUMP, Status.COMPLETED, f"Configuration saved to {backup_dir.name}")

            self._enter(ExtractionState.SWITCHING_TO_MSC, port)
            await session.close()
            session = None
            report(Step.MSC, Status.ACTIVE, "Reconnecting for MSC mode...")
            session = await self._open(port)

            self._enter(ExtractionState.MSC_HANDSHAKE, port)
            report(Step.MSC, Status.ACTIVE, "Initializing mass storage protocol...")
            await session.enter_cli(timings.handshake_timeout)
            report(Step.MSC, Status.ACTIVE, "Activating mass storage mode...")
            await session.send(MSC_COMMAND)
            await asyncio.sleep(timings.msc_close_delay)
            await session.close()
            session = None

            self._enter(ExtractionState.AWAITING_MOUNT, port)
            report(Step.MSC, Status.ACTIVE, "Waiting for drive to mount...")
            await asyncio.sleep(timings.mount_settle_delay)

            self._enter(ExtractionState.COPYING, port)
            label = self._locator.expected_label
            report(Step.MSC, Status.ACTIVE, f"Scanning for {label} drive...")
            scan = await asyncio.to_thread(self._locator.scan)
            report(Step.MSC, Status.COMPLETED, f"{label} drive detected at {scan.volume}")
            report(Step.COPY, Status.ACTIVE, "Analyzing drive contents...")
            total = len(scan.files)
            report(Step.COPY, Status.ACTIVE, f"Found {total} blackbox files", fileCount=total)

            copied = await copy_blackbox_files(
                scan,
                backup_dir,
                on_copied=lambda name, done, count: report(
                    Step.COPY, Status.ACTIVE, f"Copied: {name}", copied=done, total=count,
                ),
            )
            result.copied_files = [p.name for p in copied]
            report(Step.COPY, Status.COMPLETED, f"Successfully backed up {len(copied)} files.")

            self._enter(ExtractionState.DONE, port)
            result.state = ExtractionState.DONE
            report(
                Step.COMPLETE,
                Status.COMPLETED,
                "Extraction complete. Unplug USB to exit MSC mode.",
                backupPath=str(backup_dir),
            )
            logger.info("extraction_complete", port=port, backup=str(backup_dir), files=len(copied))
        except PlugNDumpError as exc:
            if session is not None:
                await session.close()
                session = None
            step = Step(exc.step)
            if isinstance(exc, ProtocolTimeout):
                step = _TIMEOUT_STEPS.get(self._state, step)
            logger.error(
                "extraction_failed", port=port, state=self._state.value,
                error=type(exc).__name__, message=str(exc),
            )
            self._enter(ExtractionState.ERROR, port)
            result.state = ExtractionState.ERROR
            result.error = str(exc)
            report(step, Status.ERROR, str(exc))
        finally:
            if session is not None:
                await session.close()
        return result
