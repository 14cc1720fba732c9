"""Line-oriented CLI session over a serial link.

The flight controller exposes a prompt-driven CLI: a wake byte (``#``)
switches it into CLI mode, after which each command is answered with output
followed by the ``#`` prompt. Completion of a command is decided by a
predicate over the accumulated text and the most recent chunk.
"""

from __future__ import annotations

import asyncio
import codecs
from enum import StrEnum
from typing import Callable

from plugndump.exceptions import ConnectError, ProtocolTimeout, SessionBusyError
from plugndump.transport.base import SerialConfig, SerialLink
from plugndump.transport.serial_port import PySerialLink
from plugndump.utils.logging import get_logger

logger = get_logger(__name__)

CLI_BANNER = "Entering CLI Mode"
PROMPT = "#"
WAKE = b"#\r"
DUMP_END_MARKER = "batch end"

DEFAULT_BAUD_RATE = 115200

CompletionPredicate = Callable[[str, str], bool]
LinkFactory = Callable[[SerialConfig], SerialLink]


def cli_mode_detected(buffer: str) -> bool:
    """True once the banner was seen or the buffer ends at a prompt."""
    return CLI_BANNER in buffer or buffer.strip().endswith(PROMPT)


def prompt_returned(buffer: str, chunk: str) -> bool:
    """Generic command completion: the latest chunk ends at the prompt."""
    return chunk.strip().endswith(PROMPT)


def dump_complete(buffer: str, chunk: str) -> bool:
    """Dump completion: end marker seen and the prompt has come back.

    The marker alone is not enough because it can arrive in a chunk before
    the trailing prompt.
    """
    return DUMP_END_MARKER in buffer and prompt_returned(buffer, chunk)


class SessionState(StrEnum):
    NOT_ENTERED = "not_entered"
    ENTERED = "entered"
    CLOSED = "closed"


class SessionGuard:
    """Tracks open sessions so two never overlap on the same device path."""

    def __init__(self) -> None:
        self._sessions: dict[str, CliSession] = {}

    def claim(self, port: str, session: CliSession) -> None:
        """Register *session* for *port*.

        Raises:
            SessionBusyError: If another session already holds the port.
        """
        current = self._sessions.get(port)
        if current is not None and current is not session:
            raise SessionBusyError(f"A session to {port} is already open")
        self._sessions[port] = session

    def release(self, port: str, session: CliSession) -> None:
        if self._sessions.get(port) is session:
            del self._sessions[port]

    def get(self, port: str) -> CliSession | None:
        return self._sessions.get(port)

    def active_ports(self) -> list[str]:
        return sorted(self._sessions)

    async def close(self, port: str) -> bool:
        """Close the session holding *port*; returns False if there was none."""
        session = self._sessions.get(port)
        if session is None:
            return False
        logger.info("session_force_close", port=port)
        await session.close()
        return True


class CliSession:
    """One open serial connection driven through the FC command line.

    Usage:
        async with await CliSession.open("/dev/ttyACM0") as session:
            await session.enter_cli(timeout=10)
            text = await session.run_command("dump", dump_complete, timeout=60)
    """

    def __init__(self, link: SerialLink, guard: SessionGuard | None = None) -> None:
        self._link = link
        self._guard = guard or SessionGuard()
        self._state = SessionState.NOT_ENTERED
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @classmethod
    async def open(
        cls,
        port: str,
        baud_rate: int = DEFAULT_BAUD_RATE,
        *,
        link_factory: LinkFactory = PySerialLink,
        guard: SessionGuard | None = None,
    ) -> CliSession:
        """Open a serial link to *port* and return a session for it.

        Raises:
            SessionBusyError: If *guard* already holds a session for *port*.
            ConnectError: If the port cannot be opened.
        """
        link = link_factory(SerialConfig(port=port, baud_rate=baud_rate))
        session = cls(link, guard)
        session._guard.claim(port, session)
        try:
            await link.open()
        except BaseException:
            session._state = SessionState.CLOSED
            session._guard.release(port, session)
            raise
        logger.info("session_opened", port=port, baud=baud_rate)
        return session

    @property
    def port(self) -> str:
        return self._link.config.port

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state != SessionState.CLOSED and self._link.is_open

    @property
    def buffer(self) -> str:
        return self._buffer

    async def enter_cli(self, timeout: float, prompt_grace: float = 0.5) -> str:
        """Send the wake byte and wait until the device is in CLI mode.

        When the banner arrives ahead of the prompt, the prompt is awaited for
        up to *prompt_grace* seconds so it is not mistaken for the reply to
        the next command.
        """
        self._buffer = ""
        await self._write(WAKE)
        await self._read_until(lambda buf, _chunk: cli_mode_detected(buf), timeout, "CLI prompt")
        if not self._buffer.strip().endswith(PROMPT) and prompt_grace > 0:
            try:
                await self._read_until(
                    lambda buf, _chunk: buf.strip().endswith(PROMPT), prompt_grace, "prompt",
                )
            except ProtocolTimeout:
                logger.debug("cli_prompt_not_seen", port=self.port)
        self._state = SessionState.ENTERED
        logger.info("cli_entered", port=self.port)
        return self._buffer

    async def run_command(
        self,
        command: str,
        predicate: CompletionPredicate = prompt_returned,
        timeout: float = 30.0,
    ) -> str:
        """Send *command* and collect output until *predicate* is satisfied.

        Raises:
            ProtocolTimeout: If the predicate is not satisfied within *timeout*.
            ConnectError: On serial failure or if CLI mode was not entered.
        """
        if self._state != SessionState.ENTERED:
            raise ConnectError(f"CLI mode not entered on {self.port}")
        self._buffer = ""
        logger.debug("cli_command", port=self.port, command=command)
        await self._write(f"{command}\r".encode())
        return await self._read_until(predicate, timeout, f"'{command}' to finish")

    async def send(self, command: str) -> None:
        """Send *command* without waiting for a reply."""
        if self._state != SessionState.ENTERED:
            raise ConnectError(f"CLI mode not entered on {self.port}")
        logger.debug("cli_command", port=self.port, command=command, wait=False)
        await self._write(f"{command}\r".encode())

    async def close(self) -> None:
        if self._state == SessionState.CLOSED and not self._link.is_open:
            self._guard.release(self.port, self)
            return
        self._state = SessionState.CLOSED
        try:
            await self._link.close()
        finally:
            self._guard.release(self.port, self)
        logger.info("session_closed", port=self.port)

    async def __aenter__(self) -> CliSession:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def _write(self, data: bytes) -> None:
        if self._state == SessionState.CLOSED:
            raise ConnectError(f"Session to {self.port} is closed")
        await self._link.write(data)

    async def _read_until(self, predicate: CompletionPredicate, timeout: float, what: str) -> str:
        try:
            async with asyncio.timeout(timeout):
                while True:
                    if self._state == SessionState.CLOSED:
                        raise ConnectError(f"Session to {self.port} was closed")
                    raw = await self._link.read()
                    if not raw:
                        continue
                    chunk = self._decoder.decode(raw)
                    self._buffer += chunk
                    if predicate(self._buffer, chunk):
                        return self._buffer
        except TimeoutError as exc:
            raise ProtocolTimeout(
                f"Timed out after {timeout:g}s waiting for {what} on {self.port}"
            ) from exc
