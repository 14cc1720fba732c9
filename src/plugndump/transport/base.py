"""Abstract serial link used by CLI sessions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class SerialConfig:
    """Serial port settings for one link."""
    port: str
    baud_rate: int = 115200
    read_timeout: float = 0.1


class SerialLink(ABC):
    """Abstract base for byte-stream serial connections.

    All methods are coroutines so the event loop is never blocked on I/O.
    """

    def __init__(self, config: SerialConfig) -> None:
        self._config = config

    @property
    def config(self) -> SerialConfig:
        return self._config

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """True while the underlying port is open."""

    @abstractmethod
    async def open(self) -> None:
        """Open the port.

        Raises:
            ConnectError: If the port cannot be opened.
        """

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """Write *data* to the port."""

    @abstractmethod
    async def read(self) -> bytes:
        """Return the next chunk of received bytes.

        Returns an empty bytes object when nothing arrived within the read
        timeout.
        """

    @abstractmethod
    async def close(self) -> None:
        """Close the port. Closing a closed link is a no-op."""

    async def __aenter__(self) -> SerialLink:
        await self.open()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
