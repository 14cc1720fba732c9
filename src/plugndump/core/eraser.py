"""Blackbox log store erase over the FC command line."""

from __future__ import annotations

from plugndump.config import Timings
from plugndump.core.progress import ProgressReporter
from plugndump.core.session import (
    DEFAULT_BAUD_RATE,
    CliSession,
    LinkFactory,
    SessionGuard,
    prompt_returned,
)
from plugndump.exceptions import PlugNDumpError, ProtocolTimeout
from plugndump.models.progress import Status, Step
from plugndump.models.results import EraseResult
from plugndump.transport.serial_port import PySerialLink
from plugndump.utils.logging import get_logger

logger = get_logger(__name__)

ERASE_COMMAND = "flash_erase"


class LogEraser:
    """Erases the on-device blackbox flash."""

    def __init__(
        self,
        reporter: ProgressReporter,
        *,
        timings: Timings | None = None,
        guard: SessionGuard | None = None,
        link_factory: LinkFactory = PySerialLink,
        baud_rate: int = DEFAULT_BAUD_RATE,
    ) -> None:
        self._reporter = reporter
        self._timings = timings or Timings()
        self._guard = guard or SessionGuard()
        self._link_factory = link_factory
        self._baud_rate = baud_rate

    async def run(self, port: str) -> EraseResult:
        report = self._reporter.report
        result = EraseResult(port=port)
        session: CliSession | None = None
        step = Step.CONNECT
        logger.info("erase_started", port=port)

        try:
            report(Step.CONNECT, Status.ACTIVE, f"Connecting to FC on {port} to clear logs...")
            session = await CliSession.open(
                port, self._baud_rate, link_factory=self._link_factory, guard=self._guard,
            )
            report(Step.CONNECT, Status.COMPLETED, "Connection established, entering CLI mode...")

            step = Step.CLI
            await session.enter_cli(self._timings.handshake_timeout)
            report(Step.CLI, Status.COMPLETED, "CLI mode activated")

            # The erase reuses the dump step slot in the progress display
            step = Step.DUMP
            report(Step.DUMP, Status.ACTIVE, "Sending erase command...")
            await session.run_command(ERASE_COMMAND, prompt_returned, self._timings.command_timeout)
            report(Step.DUMP, Status.COMPLETED, "Erase command executed.")

            await session.close()
            session = None
            result.succeeded = True
            report(Step.COMPLETE, Status.COMPLETED, "Blackbox logs cleared successfully.")
            logger.info("erase_complete", port=port)
        except PlugNDumpError as exc:
            if session is not None:
                await session.close()
                session = None
            logger.error("erase_failed", port=port, error=type(exc).__name__, message=str(exc))
            result.error = str(exc)
            report(
                step if isinstance(exc, ProtocolTimeout) else Step(exc.step),
                Status.ERROR,
                f"Log clearing failed: {exc}",
            )
        finally:
            if session is not None:
                await session.close()
        return result
