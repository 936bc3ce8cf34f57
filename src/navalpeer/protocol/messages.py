"""Naval battle protocol message definitions.

One immutable model per wire message. The numeric ``type`` discriminator is the
wire type code and must never be renumbered: peers rely on these exact values.
"""

import re
from enum import IntEnum, StrEnum
from typing import Annotated, Any, Literal, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)

Coordinate = tuple[int, int]
SinkSpan = tuple[Coordinate, Coordinate]

# Characters XML 1.0 cannot carry, not even as character references
XML_ILLEGAL_CHARS = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


class MessageType(IntEnum):
    """Wire type codes carried by the ``msgtype`` node."""

    HEADER = 0
    REJECT = 1
    NICK = 2
    BEGIN = 3
    MOVE = 4
    NOTIFICATION = 5
    GAME_OVER = 6
    RESTART = 7
    CHAT = 8
    GAME_OPTIONS = 9

    @property
    def wire_name(self) -> str:
        """Human-readable name written in the ``type`` attribute."""
        return "".join(part.capitalize() for part in self.name.split("_"))


class FieldState(StrEnum):
    """Outcome of a shot."""

    HIT = "hit"
    MISS = "miss"
    SINK = "sink"

    @property
    def wire_code(self) -> int:
        """Numeric ``fieldstate`` value; a sink is a hit with the death flag set."""
        return 99 if self is FieldState.MISS else 1


class ProtocolModel(BaseModel):
    """Base for all protocol values."""

    model_config = ConfigDict(frozen=True, extra="forbid", coerce_numbers_to_str=True)

    @field_validator("*", mode="after")
    @classmethod
    def _check_xml_text(cls, value: Any) -> Any:
        if isinstance(value, str) and (match := XML_ILLEGAL_CHARS.search(value)):
            raise ValueError(f"character {match.group()!r} cannot be sent in XML")
        return value


class ShipDefinition(ProtocolModel):
    """One class of ship in the agreed fleet.

    Attributes
    ----------
    name : str
        Singular display name, e.g. "frigate"
    plural_name : str
        Plural display name, e.g. "frigates"
    count : int
        How many ships of this class each player places
    size : int
        Ship length in cells

    """

    name: str
    plural_name: str
    count: int = Field(ge=0)
    size: int = Field(ge=1)


class GameOptions(ProtocolModel):
    """Board and fleet configuration agreed for the session."""

    adjacent_ships_allowed: bool
    allow_multiple_of_same_ship: bool
    longest_ship_length: int = Field(ge=1)
    board_width: int = Field(ge=1)
    board_height: int = Field(ge=1)
    ships: tuple[ShipDefinition, ...] = ()


DEFAULT_GAME_OPTIONS = GameOptions(
    adjacent_ships_allowed=True,
    allow_multiple_of_same_ship=False,
    longest_ship_length=4,
    board_width=10,
    board_height=10,
    ships=(
        ShipDefinition(name="minesweeper", plural_name="minesweepers", count=1, size=1),
        ShipDefinition(name="frigate", plural_name="frigates", count=1, size=2),
        ShipDefinition(name="cruise", plural_name="cruises", count=1, size=3),
        ShipDefinition(name="carrier", plural_name="carriers", count=1, size=4),
    ),
)


class HeaderMessage(ProtocolModel):
    """Handshake message describing the sending client."""

    type: Literal[MessageType.HEADER] = MessageType.HEADER
    protocol_version: str
    client_name: str
    client_version: str
    client_description: str


class RejectMessage(ProtocolModel):
    """Sent by a hosting client that refuses the connection."""

    type: Literal[MessageType.REJECT] = MessageType.REJECT
    version_mismatch: bool
    reason: str


class NickMessage(ProtocolModel):
    """Handshake message carrying the sender's nickname."""

    type: Literal[MessageType.NICK] = MessageType.NICK
    nickname: str


class BeginMessage(ProtocolModel):
    """Sent when ship placement is finished and play starts."""

    type: Literal[MessageType.BEGIN] = MessageType.BEGIN


class NotificationMessage(ProtocolModel):
    """Answer to a Move: hit, miss or sink.

    Attributes
    ----------
    x, y : int
        Coordinate that was fired at
    field_state : FieldState
        Outcome of the shot
    sink_span : SinkSpan | None
        The two corner coordinates of the sunk ship, only for SINK

    """

    type: Literal[MessageType.NOTIFICATION] = MessageType.NOTIFICATION
    x: int
    y: int
    field_state: FieldState
    sink_span: SinkSpan | None = None

    @model_validator(mode="after")
    def _check_sink_span(self) -> Self:
        if self.field_state is FieldState.SINK and self.sink_span is None:
            raise ValueError("a sink notification needs the sunk ship's span")
        if self.field_state is not FieldState.SINK and self.sink_span is not None:
            raise ValueError(f"a {self.field_state} notification cannot carry a span")
        return self

    @property
    def coordinate(self) -> Coordinate:
        return (self.x, self.y)

    @property
    def death(self) -> bool:
        """True when the shot sank a ship."""
        return self.field_state is FieldState.SINK


class MoveMessage(ProtocolModel):
    """A shot at coordinate (x, y) on the receiver's board."""

    type: Literal[MessageType.MOVE] = MessageType.MOVE
    x: int
    y: int

    @property
    def coordinate(self) -> Coordinate:
        return (self.x, self.y)

    def respond(
        self,
        outcome: FieldState | str,
        ship_span: SinkSpan | None = None,
    ) -> NotificationMessage:
        """Build the Notification answering this shot.

        Parameters
        ----------
        outcome : FieldState | str
            "hit", "miss" or "sink"
        ship_span : SinkSpan | None
            Corner coordinates of the sunk ship; required for "sink"

        Returns
        -------
        NotificationMessage
            Notification to pass to ``Session.respond_to_move``

        Examples
        --------
        >>> MoveMessage(x=2, y=3).respond("sink", ((2, 2), (2, 4))).sink_span
        ((2, 2), (2, 4))

        """
        return NotificationMessage(
            x=self.x,
            y=self.y,
            field_state=FieldState(outcome),
            sink_span=ship_span,
        )


class GameOverMessage(ProtocolModel):
    """Sent by the player who lost."""

    type: Literal[MessageType.GAME_OVER] = MessageType.GAME_OVER


class RestartMessage(ProtocolModel):
    """Restart request. Restarts are observed through a later Begin."""

    type: Literal[MessageType.RESTART] = MessageType.RESTART


class ChatMessage(ProtocolModel):
    """Free-text chat line."""

    type: Literal[MessageType.CHAT] = MessageType.CHAT
    text: str
    nickname: str


class GameOptionsMessage(GameOptions):
    """Board and fleet configuration proposed by the hosting client."""

    type: Literal[MessageType.GAME_OPTIONS] = MessageType.GAME_OPTIONS

    def to_options(self) -> GameOptions:
        return GameOptions.model_validate(self.model_dump(exclude={"type"}))


# Discriminated union over the wire type code

Message = Annotated[
    HeaderMessage
    | RejectMessage
    | NickMessage
    | BeginMessage
    | MoveMessage
    | NotificationMessage
    | GameOverMessage
    | RestartMessage
    | ChatMessage
    | GameOptionsMessage,
    Field(discriminator="type"),
]

# TypeAdapter for validating decoded messages
message_adapter: TypeAdapter[Message] = TypeAdapter(Message)
