"""Peer-to-peer implementation of the KNavalBattle wire protocol.

Quick start::

    from navalpeer import NavalClient, SessionListener

    class Listener(SessionListener):
        def on_move(self, move):
            session.respond_to_move(move.respond("miss"))

    client = NavalClient(Listener(), nickname="Ahab")
    session = await client.connect("127.0.0.1", 54321)
    ...
    notification = await session.fire_at(5, 5)
"""

from navalpeer.errors import (
    ConnectionRejectedError,
    DecodeError,
    FireTimeoutError,
    NavalPeerError,
    PeerConnectionError,
    ProtocolViolationError,
)
from navalpeer.log_config import configure_logging
from navalpeer.peer import GameState, NavalClient, Player, Session, SessionListener
from navalpeer.protocol import (
    DEFAULT_GAME_OPTIONS,
    BeginMessage,
    ChatMessage,
    FieldState,
    GameOptions,
    GameOptionsMessage,
    GameOverMessage,
    HeaderMessage,
    Message,
    MessageType,
    MoveMessage,
    NickMessage,
    NotificationMessage,
    RejectMessage,
    RestartMessage,
    ShipDefinition,
    decode,
    encode,
)
from navalpeer.settings import Settings, settings

__all__ = [
    "DEFAULT_GAME_OPTIONS",
    "BeginMessage",
    "ChatMessage",
    "ConnectionRejectedError",
    "DecodeError",
    "FieldState",
    "FireTimeoutError",
    "GameOptions",
    "GameOptionsMessage",
    "GameOverMessage",
    "GameState",
    "HeaderMessage",
    "Message",
    "MessageType",
    "MoveMessage",
    "NavalClient",
    "NavalPeerError",
    "NickMessage",
    "NotificationMessage",
    "PeerConnectionError",
    "Player",
    "ProtocolViolationError",
    "RejectMessage",
    "RestartMessage",
    "Session",
    "SessionListener",
    "Settings",
    "ShipDefinition",
    "configure_logging",
    "decode",
    "encode",
    "settings",
]
