"""asyncio TCP connection to an opponent.

Thin glue between a socket and a Session: frames inbound bytes, feeds them to
the session in arrival order, and reports the end of the stream.
"""

from __future__ import annotations

import asyncio
import logging

from navalpeer.errors import DecodeError, PeerConnectionError, ProtocolViolationError
from navalpeer.peer.session import Session, SessionListener
from navalpeer.peer.transport import StreamTransport
from navalpeer.protocol.framing import MessageFramer
from navalpeer.settings import Settings, settings

logger = logging.getLogger(__name__)


class NavalClient:
    """Client that connects to a hosting naval battle peer over TCP.

    Parameters
    ----------
    listener : SessionListener | None
        Receiver of session notifications, shared by every connection
    nickname : str | None
        Local nickname. Defaults to ``config.nickname``.
    config : Settings | None
        Settings to use instead of the module-level ``settings``

    """

    def __init__(
        self,
        listener: SessionListener | None = None,
        *,
        nickname: str | None = None,
        config: Settings | None = None,
    ) -> None:
        self.config = config or settings
        self.listener = listener
        self.nickname = nickname
        self._session: Session | None = None
        self._transport: StreamTransport | None = None
        self._reader_task: asyncio.Task[None] | None = None

    @property
    def session(self) -> Session | None:
        """Session of the current or last connection."""
        return self._session

    @property
    def is_connected(self) -> bool:
        return self._session is not None and not self._session.is_closed

    async def connect(
        self, host: str | None = None, port: int | None = None
    ) -> Session:
        """Open a connection and start reading from it.

        Parameters
        ----------
        host : str | None
            Opponent address. Defaults to ``config.host``.
        port : int | None
            Opponent port. Defaults to ``config.port``.

        Returns
        -------
        Session
            Fresh session in the DISCONNECTED phase, waiting for the handshake

        Raises
        ------
        ProtocolViolationError
            If already connected
        PeerConnectionError
            If the connection cannot be opened

        """
        if self._session is not None and not self._session.is_closed:
            raise ProtocolViolationError(
                "Already connected to an opponent", self._session.phase
            )

        host = host or self.config.host
        port = port or self.config.port
        try:
            reader, writer = await asyncio.open_connection(host, port)
        except OSError as e:
            raise PeerConnectionError(f"Could not connect to {host}:{port}: {e}") from e

        transport = StreamTransport(writer)
        session = Session(
            transport, self.listener, nickname=self.nickname, config=self.config
        )
        self._transport = transport
        self._session = session
        self._reader_task = asyncio.create_task(
            self._read_loop(reader, transport, session)
        )
        logger.info("Connected to %s:%d", host, port)
        return session

    async def disconnect(self) -> None:
        """Close the connection and wait for the reader to finish.

        Raises
        ------
        ProtocolViolationError
            If not connected

        """
        if self._session is None or self._session.is_closed:
            raise ProtocolViolationError("Not connected to an opponent")
        self._session.close()
        await self.wait_closed()

    async def wait_closed(self) -> None:
        """Wait until the current connection has been torn down."""
        if self._reader_task is not None:
            await self._reader_task
        if self._transport is not None:
            await self._transport.wait_closed()

    async def _read_loop(
        self,
        reader: asyncio.StreamReader,
        transport: StreamTransport,
        session: Session,
    ) -> None:
        """Background task feeding inbound documents to the session."""
        framer = MessageFramer(self.config.max_frame_bytes)
        error: BaseException | None = None
        try:
            while data := await reader.read(self.config.read_chunk_size):
                try:
                    frames = framer.feed(data)
                except DecodeError as e:
                    logger.warning("Discarding inbound data: %s", e)
                    continue

                for frame in frames:
                    if session.is_closed:
                        return
                    try:
                        session.receive(frame)
                    except DecodeError as e:
                        logger.warning("Ignoring undecodable message: %s", e)
                    except ProtocolViolationError as e:
                        logger.error("Opponent violated the protocol: %s", e)
                        error = PeerConnectionError(
                            f"Opponent violated the protocol: {e}"
                        )
                        error.__cause__ = e
                        return
        except (ConnectionError, OSError) as e:
            logger.warning("Connection error: %s", e)
            error = e
        except Exception as e:
            logger.exception("Reader stopped on an unexpected error")
            error = e
            raise
        finally:
            transport.close()
            session.connection_lost(error)
            logger.info("Disconnected")
