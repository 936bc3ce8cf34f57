"""Naval battle wire protocol: message models, XML codec and stream framing."""

from navalpeer.protocol.codec import decode, encode
from navalpeer.protocol.framing import MessageFramer
from navalpeer.protocol.messages import (
    DEFAULT_GAME_OPTIONS,
    BeginMessage,
    ChatMessage,
    Coordinate,
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
    SinkSpan,
    message_adapter,
)

__all__ = [
    "DEFAULT_GAME_OPTIONS",
    "BeginMessage",
    "ChatMessage",
    "Coordinate",
    "FieldState",
    "GameOptions",
    "GameOptionsMessage",
    "GameOverMessage",
    "HeaderMessage",
    "Message",
    "MessageFramer",
    "MessageType",
    "MoveMessage",
    "NickMessage",
    "NotificationMessage",
    "RejectMessage",
    "RestartMessage",
    "ShipDefinition",
    "SinkSpan",
    "decode",
    "encode",
    "message_adapter",
]
