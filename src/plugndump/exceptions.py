"""Exception hierarchy for serial, protocol, persistence and drive failures.

Every error carries the progress step it is reported under so a failed run
can be surfaced as a single ``{step, status: error, message}`` event.
"""

from __future__ import annotations


class PlugNDumpError(Exception):
    """Base exception for all Plug-N-Dump errors."""

    default_step = "connect"

    def __init__(self, message: str, step: str | None = None) -> None:
        self.step = step or self.default_step
        super().__init__(message)


class ConnectError(PlugNDumpError):
    """Serial port open, write or read failed."""


class SessionBusyError(ConnectError):
    """A session to the same device path is already open."""


class ProtocolTimeout(PlugNDumpError):
    """The device never produced the expected completion marker."""

    default_step = "cli"


class PersistenceError(PlugNDumpError):
    """Creating the backup folder or writing a file failed."""

    default_step = "dump"


class DriveNotFoundError(PlugNDumpError):
    """No mounted volume carries the expected flight controller label."""

    default_step = "msc"


class DriveReadError(PlugNDumpError):
    """The flight controller volume was found but could not be read."""

    default_step = "msc"


class NoBlackboxFilesError(PlugNDumpError):
    """The flight controller volume holds no blackbox files."""

    default_step = "msc"


class OperationInProgressError(PlugNDumpError):
    """An extraction or erase is already running."""
