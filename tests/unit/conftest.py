"""Shared fixtures for unit tests."""

import pytest

from navalpeer.peer.session import GameState, Session, SessionListener
from navalpeer.protocol import codec
from navalpeer.protocol.messages import (
    BeginMessage,
    GameOverMessage,
    HeaderMessage,
    Message,
    MoveMessage,
    NickMessage,
)
from navalpeer.settings import Settings


class FakeTransport:
    """Transport that records every write instead of sending it."""

    def __init__(self) -> None:
        self.writes: list[bytes] = []
        self.closed = False

    def write(self, data: bytes) -> None:
        self.writes.append(data)

    def close(self) -> None:
        self.closed = True

    @property
    def messages(self) -> list[Message]:
        """Every write decoded back into a message."""
        return [codec.decode(data) for data in self.writes]

    @property
    def last(self) -> Message:
        return codec.decode(self.writes[-1])


class RecordingListener(SessionListener):
    """Listener that records every notification as (name, argument)."""

    def __init__(self) -> None:
        self.events: list[tuple[str, object]] = []

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def on_raw(self, text):
        self.events.append(("raw", text))

    def on_connect(self, opponent):
        self.events.append(("connect", opponent))

    def on_chat(self, message):
        self.events.append(("chat", message))

    def on_begin(self, is_restart):
        self.events.append(("begin", is_restart))

    def on_move(self, move):
        self.events.append(("move", move))

    def on_can_fire(self):
        self.events.append(("can_fire", None))

    def on_game_over(self, winner):
        self.events.append(("game_over", winner))

    def on_restart_requested(self):
        self.events.append(("restart_requested", None))

    def on_reject(self, message):
        self.events.append(("reject", message))

    def on_disconnect(self, error):
        self.events.append(("disconnect", error))


class SessionDriver:
    """Plays the opponent's side to move a session into a given phase."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def receive(self, message: Message) -> None:
        self.session.receive(codec.encode(message))

    def handshake(self, nickname: str = "B") -> None:
        self.receive(
            HeaderMessage(
                protocol_version="0.1.0",
                client_name="app",
                client_version="1",
                client_description="desc",
            )
        )
        self.receive(NickMessage(nickname=nickname))

    def begin(self) -> None:
        self.receive(BeginMessage())

    def opponent_fires(self, x: int = 0, y: int = 0) -> MoveMessage:
        move = MoveMessage(x=x, y=y)
        self.receive(move)
        return move

    def take_turn(self, x: int = 0, y: int = 0) -> None:
        """Answer an opponent shot with a miss so that this side may fire."""
        move = self.opponent_fires(x, y)
        self.session.respond_to_move(move.respond("miss"))

    def reach(self, phase: GameState) -> None:
        """Drive a fresh session to ``phase``; AWAIT_RESPONSE_OTHER needs a loop."""
        if phase is GameState.DISCONNECTED:
            return
        self.handshake()
        if phase is GameState.SHIP_SETUP:
            return
        self.begin()
        if phase is GameState.FIRE_OTHER:
            return
        if phase is GameState.GAME_OVER:
            self.receive(GameOverMessage())
            return
        self.opponent_fires()
        if phase is GameState.AWAIT_RESPONSE_SELF:
            return
        self.session.respond_to_move(MoveMessage(x=0, y=0).respond("miss"))
        if phase is GameState.FIRE_SELF:
            return
        self.session.fire_at(9, 9)


@pytest.fixture
def config() -> Settings:
    """Settings with fixed local identity and no shot deadline."""
    return Settings(
        nickname="A",
        client_name="app",
        client_version="1",
        client_description="desc",
        fire_timeout_seconds=None,
    )


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def session(transport, listener, config) -> Session:
    """Create a fresh Session wired to a fake transport."""
    return Session(transport, listener, config=config)


@pytest.fixture
def driver(session) -> SessionDriver:
    return SessionDriver(session)
