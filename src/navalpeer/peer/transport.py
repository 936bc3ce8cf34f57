"""Byte-stream transport used by a session."""

import asyncio
import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Write side of the connection to the opponent.

    Inbound bytes and the close notification travel the other way: whoever owns
    the connection calls ``Session.receive`` and ``Session.connection_lost``.
    """

    def write(self, data: bytes) -> None: ...

    def close(self) -> None: ...


class StreamTransport:
    """Transport over an asyncio stream writer.

    Parameters
    ----------
    writer : asyncio.StreamWriter
        Writer half of an open connection

    """

    def __init__(self, writer: asyncio.StreamWriter) -> None:
        self._writer = writer

    @property
    def peer_address(self) -> tuple[str, int] | None:
        """(host, port) of the opponent, or None if unknown."""
        return self._writer.get_extra_info("peername")

    def write(self, data: bytes) -> None:
        self._writer.write(data)

    def close(self) -> None:
        if not self._writer.is_closing():
            logger.debug("Closing stream to %s", self.peer_address)
            self._writer.close()

    async def drain(self) -> None:
        """Wait until the write buffer is flushed."""
        await self._writer.drain()

    async def wait_closed(self) -> None:
        """Wait until the underlying stream is closed."""
        try:
            await self._writer.wait_closed()
        except (ConnectionError, OSError) as e:
            logger.debug("Stream closed with error: %s", e)
