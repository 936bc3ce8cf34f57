"""Pytest configuration for integration tests.

A scripted opponent listens on a loopback port; tests drive it message by
message and connect a real NavalClient to it.
"""

import asyncio

import pytest
import pytest_asyncio

from navalpeer.errors import DecodeError
from navalpeer.peer.client import NavalClient
from navalpeer.peer.session import SessionListener
from navalpeer.protocol import codec
from navalpeer.protocol.framing import MessageFramer
from navalpeer.protocol.messages import Message
from navalpeer.settings import Settings

TIMEOUT = 2


class ScriptedPeer:
    """Hosting opponent whose every message is sent explicitly by the test."""

    def __init__(self) -> None:
        self.host = "127.0.0.1"
        self.port = 0
        self.received: asyncio.Queue[Message] = asyncio.Queue()
        self.connected = asyncio.Event()
        self.closed = asyncio.Event()
        self._server: asyncio.Server | None = None
        self._writer: asyncio.StreamWriter | None = None

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._handle, self.host, 0)
        self.port = self._server.sockets[0].getsockname()[1]

    async def _handle(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        self._writer = writer
        self.connected.set()
        framer = MessageFramer()
        try:
            while data := await reader.read(4096):
                for frame in framer.feed(data):
                    await self.received.put(codec.decode(frame))
        except (ConnectionError, DecodeError):
            pass
        finally:
            self.closed.set()

    async def send(self, message: Message) -> None:
        await self.send_raw(codec.encode(message))

    async def send_raw(self, data: bytes) -> None:
        await asyncio.wait_for(self.connected.wait(), TIMEOUT)
        self._writer.write(data)
        await self._writer.drain()

    async def expect(self) -> Message:
        """Next message the client sent."""
        return await asyncio.wait_for(self.received.get(), TIMEOUT)

    async def wait_closed(self) -> None:
        """Wait until the client has closed its end."""
        await asyncio.wait_for(self.closed.wait(), TIMEOUT)

    async def hang_up(self) -> None:
        if self._writer is not None and not self._writer.is_closing():
            self._writer.close()

    async def stop(self) -> None:
        await self.hang_up()
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()


class QueueListener(SessionListener):
    """Listener that queues notifications so tests can await them."""

    def __init__(self) -> None:
        self.events: asyncio.Queue[tuple[str, object]] = asyncio.Queue()

    async def next(self, name: str) -> object:
        """Wait for the next ``name`` notification, skipping any others."""
        while True:
            event, argument = await asyncio.wait_for(self.events.get(), TIMEOUT)
            if event == name:
                return argument

    def on_connect(self, opponent):
        self.events.put_nowait(("connect", opponent))

    def on_chat(self, message):
        self.events.put_nowait(("chat", message))

    def on_begin(self, is_restart):
        self.events.put_nowait(("begin", is_restart))

    def on_move(self, move):
        self.events.put_nowait(("move", move))

    def on_can_fire(self):
        self.events.put_nowait(("can_fire", None))

    def on_game_over(self, winner):
        self.events.put_nowait(("game_over", winner))

    def on_reject(self, message):
        self.events.put_nowait(("reject", message))

    def on_disconnect(self, error):
        self.events.put_nowait(("disconnect", error))


@pytest.fixture
def config() -> Settings:
    return Settings(nickname="A", read_chunk_size=64, fire_timeout_seconds=None)


@pytest_asyncio.fixture
async def peer():
    """Start a scripted opponent on a free loopback port."""
    scripted = ScriptedPeer()
    await scripted.start()
    yield scripted
    await scripted.stop()


@pytest.fixture
def listener() -> QueueListener:
    return QueueListener()


@pytest_asyncio.fixture
async def client(listener, config):
    """NavalClient that is disconnected again after the test."""
    naval_client = NavalClient(listener, config=config)
    yield naval_client
    if naval_client.is_connected:
        await naval_client.disconnect()
