"""XML codec for kmessage documents.

Wire format::

    <!DOCTYPE kmessage>
    <kmessage>
      <msgtype type="Move">4</msgtype>
      <fieldx>2</fieldx>
      <fieldy>3</fieldy>
    </kmessage>

The numeric ``msgtype`` value is the only discriminator read on decode; the
``type`` attribute is informational.
"""

import xml.etree.ElementTree as ET
from typing import Any, assert_never

from pydantic import TypeAdapter, ValidationError

from navalpeer.errors import DecodeError
from navalpeer.protocol.messages import (
    FieldState,
    GameOptionsMessage,
    Message,
    MessageType,
    NotificationMessage,
    message_adapter,
)

DOCTYPE = "<!DOCTYPE kmessage>"
ROOT_TAG = "kmessage"
MISS_CODE = FieldState.MISS.wire_code
HIT_CODE = FieldState.HIT.wire_code
SINK_SPAN_TAGS = ("xstart", "ystart", "xstop", "ystop")

# (wire tag, model field) pairs in wire order, for variants made of plain text nodes
TEXT_FIELDS: dict[MessageType, tuple[tuple[str, str], ...]] = {
    MessageType.HEADER: (
        ("protocolVersion", "protocol_version"),
        ("clientName", "client_name"),
        ("clientVersion", "client_version"),
        ("clientDescription", "client_description"),
    ),
    MessageType.REJECT: (("versionMismatch", "version_mismatch"), ("reason", "reason")),
    MessageType.NICK: (("nickname", "nickname"),),
    MessageType.BEGIN: (),
    MessageType.MOVE: (("fieldx", "x"), ("fieldy", "y")),
    MessageType.GAME_OVER: (),
    MessageType.RESTART: (),
    MessageType.CHAT: (("chat", "text"), ("nickname", "nickname")),
}

_bool_adapter = TypeAdapter(bool)


def _wire_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _add_node(parent: ET.Element, tag: str, value: Any) -> ET.Element:
    node = ET.SubElement(parent, tag)
    node.text = _wire_text(value)
    return node


def _encode_text_fields(root: ET.Element, message: Message) -> None:
    for tag, field in TEXT_FIELDS[message.type]:
        _add_node(root, tag, getattr(message, field))


def _encode_notification(root: ET.Element, message: NotificationMessage) -> None:
    _add_node(root, "fieldx", message.x)
    _add_node(root, "fieldy", message.y)
    _add_node(root, "fieldstate", message.field_state.wire_code)
    if message.field_state is FieldState.SINK:
        (x_start, y_start), (x_stop, y_stop) = message.sink_span  # type: ignore[misc]
        _add_node(root, "death", True)
        _add_node(root, "xstart", x_start)
        _add_node(root, "xstop", x_stop)
        _add_node(root, "ystart", y_start)
        _add_node(root, "ystop", y_stop)


def _encode_game_options(root: ET.Element, message: GameOptionsMessage) -> None:
    _add_node(root, "enabledAdjacentShips", message.adjacent_ships_allowed)
    # Two options share one node: the attribute holds the longest ship length,
    # the text holds the allow-multiple flag
    several = _add_node(root, "oneOrSeveralShips", message.allow_multiple_of_same_ship)
    several.set("longestShip", str(message.longest_ship_length))
    _add_node(root, "boardWidth", message.board_width)
    _add_node(root, "boardHeight", message.board_height)
    for ship in message.ships:
        ET.SubElement(
            root,
            "ships",
            {
                "name": ship.name,
                "number": str(ship.count),
                "pluralName": ship.plural_name,
                "size": str(ship.size),
            },
        )


def encode(message: Message) -> bytes:
    """Encode a message as a UTF-8 kmessage document.

    Parameters
    ----------
    message : Message
        Any of the ten protocol messages

    Returns
    -------
    bytes
        Doctype line followed by the indented XML document

    """
    root = ET.Element(ROOT_TAG)
    msgtype = ET.SubElement(root, "msgtype", {"type": message.type.wire_name})
    msgtype.text = str(int(message.type))

    match message.type:
        case (
            MessageType.HEADER
            | MessageType.REJECT
            | MessageType.NICK
            | MessageType.BEGIN
            | MessageType.MOVE
            | MessageType.GAME_OVER
            | MessageType.RESTART
            | MessageType.CHAT
        ):
            _encode_text_fields(root, message)
        case MessageType.NOTIFICATION:
            _encode_notification(root, message)  # type: ignore[arg-type]
        case MessageType.GAME_OPTIONS:
            _encode_game_options(root, message)  # type: ignore[arg-type]
        case _:
            assert_never(message.type)

    ET.indent(root, space="  ")
    # Parsers fold a raw "\r" into "\n"; indentation never emits "\r"
    body = ET.tostring(root, encoding="unicode").replace("\r", "&#13;")
    return f"{DOCTYPE}\n{body}".encode()


def _child_text(root: ET.Element, tag: str) -> str | None:
    """Text of the first ``tag`` child, "" for an empty node, None if absent."""
    node = root.find(tag)
    if node is None:
        return None
    return node.text or ""


def _present(fields: dict[str, Any]) -> dict[str, Any]:
    # Absent nodes are left out so validation reports them as missing
    return {key: value for key, value in fields.items() if value is not None}


def _decode_text_fields(root: ET.Element, message_type: MessageType) -> dict[str, Any]:
    return _present(
        {field: _child_text(root, tag) for tag, field in TEXT_FIELDS[message_type]}
    )


def _decode_field_state(root: ET.Element) -> FieldState:
    code = _child_text(root, "fieldstate")
    state = None if code is None else int(code)
    # A miss stays a miss whatever the death flag says
    if state == MISS_CODE:
        return FieldState.MISS

    death = _child_text(root, "death")
    if death is not None and _bool_adapter.validate_python(death):
        return FieldState.SINK
    if state is None:
        raise DecodeError("Notification has no fieldstate")
    if state == HIT_CODE:
        return FieldState.HIT
    raise DecodeError(f"Unknown fieldstate: {state}")


def _decode_notification(root: ET.Element) -> dict[str, Any]:
    field_state = _decode_field_state(root)
    fields: dict[str, Any] = {
        "x": _child_text(root, "fieldx"),
        "y": _child_text(root, "fieldy"),
        "field_state": field_state,
    }
    if field_state is FieldState.SINK:
        corners = [_child_text(root, tag) for tag in SINK_SPAN_TAGS]
        if all(corner is not None for corner in corners):
            x_start, y_start, x_stop, y_stop = corners
            fields["sink_span"] = ((x_start, y_start), (x_stop, y_stop))
    return _present(fields)


def _decode_game_options(root: ET.Element) -> dict[str, Any]:
    several = root.find("oneOrSeveralShips")
    return _present(
        {
            "adjacent_ships_allowed": _child_text(root, "enabledAdjacentShips"),
            "allow_multiple_of_same_ship": (
                None if several is None else several.text or ""
            ),
            "longest_ship_length": (
                None if several is None else several.get("longestShip")
            ),
            "board_width": _child_text(root, "boardWidth"),
            "board_height": _child_text(root, "boardHeight"),
            "ships": [
                _present(
                    {
                        "name": node.get("name"),
                        "plural_name": node.get("pluralName"),
                        "count": node.get("number"),
                        "size": node.get("size"),
                    }
                )
                for node in root.findall("ships")
            ],
        }
    )


def _decode_type(root: ET.Element) -> MessageType:
    msgtype = root.find("msgtype")
    code = (msgtype.text or "").strip() if msgtype is not None else ""
    if not code:
        raise DecodeError("Message has no msgtype")
    try:
        return MessageType(int(code))
    except ValueError as e:
        raise DecodeError(f"Unknown message type: {code!r}") from e


def decode(data: bytes | str) -> Message:
    """Decode one kmessage document.

    Parameters
    ----------
    data : bytes | str
        A complete document, doctype line optional

    Returns
    -------
    Message
        The typed message selected by the numeric msgtype code

    Raises
    ------
    DecodeError
        If the XML is malformed, the kmessage root or msgtype is missing, the
        type code is unknown, or any field is missing or ill-typed

    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise DecodeError(f"Malformed message: {e}") from e

    if root.tag != ROOT_TAG:
        raise DecodeError(f"Expected <{ROOT_TAG}> root, got <{root.tag}>")

    message_type = _decode_type(root)
    try:
        match message_type:
            case MessageType.NOTIFICATION:
                fields = _decode_notification(root)
            case MessageType.GAME_OPTIONS:
                fields = _decode_game_options(root)
            case _:
                fields = _decode_text_fields(root, message_type)
        return message_adapter.validate_python({"type": message_type, **fields})
    except ValidationError as e:
        raise DecodeError(
            f"Invalid {message_type.wire_name} message: {e.error_count()} error(s)"
        ) from e
    except DecodeError:
        raise
    except ValueError as e:
        raise DecodeError(f"Invalid {message_type.wire_name} message: {e}") from e
