"""Turn-order state machine for one naval battle session.

Phases::

    DISCONNECTED --Nick--> SHIP_SETUP --Begin--> FIRE_OTHER
    FIRE_OTHER --Move--> AWAIT_RESPONSE_SELF --respond_to_move()--> FIRE_SELF
    FIRE_SELF --fire_at()--> AWAIT_RESPONSE_OTHER --Notification--> FIRE_SELF
    FIRE_SELF (shot answered) --Move--> AWAIT_RESPONSE_SELF
    any --GameOver / declare_game_over()--> GAME_OVER --Begin--> FIRE_OTHER
    any --connection lost--> DISCONNECTED

Inbound messages are applied one at a time in arrival order. Every outbound call
checks the phase before writing anything and fails without side effects when
the call is illegal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, NoReturn, assert_never

from navalpeer.errors import (
    ConnectionRejectedError,
    FireTimeoutError,
    PeerConnectionError,
    ProtocolViolationError,
)
from navalpeer.peer.shots import ShotTable
from navalpeer.protocol import codec
from navalpeer.protocol.messages import (
    DEFAULT_GAME_OPTIONS,
    ChatMessage,
    Coordinate,
    GameOptions,
    GameOverMessage,
    HeaderMessage,
    Message,
    MessageType,
    MoveMessage,
    NickMessage,
    NotificationMessage,
    RejectMessage,
    RestartMessage,
)
from navalpeer.settings import Settings, settings

if TYPE_CHECKING:
    import asyncio

    from navalpeer.peer.transport import Transport

logger = logging.getLogger(__name__)


class GameState(StrEnum):
    """Phases of a session."""

    # Not connected, or connected but the nickname handshake is not done
    DISCONNECTED = "disconnected"
    # One or both players are placing ships
    SHIP_SETUP = "ship_setup"
    # This player may fire at the opponent's board
    FIRE_SELF = "fire_self"
    # This player must answer the opponent's shot
    AWAIT_RESPONSE_SELF = "await_response_self"
    # The opponent may fire at this player's board
    FIRE_OTHER = "fire_other"
    # The opponent must answer this player's shot
    AWAIT_RESPONSE_OTHER = "await_response_other"
    GAME_OVER = "game_over"


@dataclass(frozen=True, slots=True)
class Player:
    """One of the two players.

    Attributes
    ----------
    is_self : bool
        True for the local player, False for the opponent
    nickname : str
        Display name

    """

    is_self: bool
    nickname: str


class SessionListener:
    """Receives notifications from a session.

    Every hook is a no-op; subclass and override the ones the application needs.
    Hooks run synchronously on the inbound path, after the phase has changed.
    """

    def on_raw(self, text: str) -> None:
        """Raw inbound document, called before it is decoded."""

    def on_connect(self, opponent: Player) -> None:
        """Nickname handshake finished; ship placement can start."""

    def on_chat(self, message: ChatMessage) -> None:
        """Opponent sent a chat line."""

    def on_begin(self, is_restart: bool) -> None:
        """Play started; ``is_restart`` is True unless coming from ship setup."""

    def on_move(self, move: MoveMessage) -> None:
        """Opponent fired; answer with ``respond_to_move(move.respond(...))``."""

    def on_can_fire(self) -> None:
        """This player may fire now."""

    def on_game_over(self, winner: Player) -> None:
        """The game ended."""

    def on_restart_requested(self) -> None:
        """Opponent asked for a restart; the restart itself arrives as a Begin."""

    def on_reject(self, message: RejectMessage) -> None:
        """Opponent refused the connection; the session closes right after."""

    def on_disconnect(self, error: PeerConnectionError | None) -> None:
        """Connection closed; ``error`` is None for a clean close."""


class Session:
    """State machine for one connection to an opponent.

    The owner of the connection passes every complete inbound document to
    ``receive`` and reports the end of the stream with ``connection_lost``. The
    session writes replies and outbound messages to ``transport``.

    Parameters
    ----------
    transport : Transport
        Write side of the connection
    listener : SessionListener | None
        Receiver of session notifications
    nickname : str | None
        Local nickname. Defaults to ``config.nickname``.
    config : Settings | None
        Settings to use instead of the module-level ``settings``

    """

    def __init__(
        self,
        transport: Transport,
        listener: SessionListener | None = None,
        *,
        nickname: str | None = None,
        config: Settings | None = None,
    ) -> None:
        self.config = config or settings
        self.nickname = nickname or self.config.nickname
        self.listener = listener or SessionListener()
        self._transport = transport
        self._phase = GameState.DISCONNECTED
        self._game_options: GameOptions = DEFAULT_GAME_OPTIONS
        self._fired_at: set[Coordinate] = set()
        self._shots = ShotTable(
            self.config.fire_timeout_seconds, on_timeout=self._on_shot_timeout
        )
        self._opponent: Player | None = None
        self._last_move: MoveMessage | None = None
        # True once this turn's shot has been answered
        self._turn_spent = False
        self._closed = False

    @property
    def phase(self) -> GameState:
        """Current phase. Only the session's own transitions change it."""
        return self._phase

    @property
    def opponent(self) -> Player | None:
        """The opponent, known once their Nick has been received."""
        return self._opponent

    @property
    def me(self) -> Player:
        return Player(is_self=True, nickname=self.nickname)

    @property
    def game_options(self) -> GameOptions:
        """Options from the last GameOptions message, or the defaults."""
        return self._game_options

    @property
    def fired_at(self) -> frozenset[Coordinate]:
        """Coordinates this player has fired at and had answered this game."""
        return frozenset(self._fired_at)

    @property
    def pending_shot(self) -> Coordinate | None:
        """Coordinate of the shot awaiting its Notification, or None."""
        return self._shots.coordinate

    @property
    def is_closed(self) -> bool:
        return self._closed

    # Inbound

    def receive(self, frame: bytes | str) -> Message:
        """Decode one inbound document and apply it.

        Parameters
        ----------
        frame : bytes | str
            One complete kmessage document

        Returns
        -------
        Message
            The decoded message

        Raises
        ------
        DecodeError
            If the document cannot be decoded. The session is unchanged.
        ProtocolViolationError
            If the opponent sent a message that is illegal in the current phase.
            The session is unchanged.
        PeerConnectionError
            If the session is already closed

        """
        self._ensure_open()
        if isinstance(frame, bytes):
            text = frame.decode("utf-8", errors="replace")
        else:
            text = frame
        self.listener.on_raw(text)
        message = codec.decode(frame)
        logger.debug("RECV %s", message)
        self.handle(message)
        return message

    def handle(self, message: Message) -> None:
        """Apply an already decoded inbound message."""
        self._ensure_open()
        match message.type:
            case MessageType.HEADER:
                self._send(
                    HeaderMessage(
                        protocol_version=self.config.protocol_version,
                        client_name=self.config.client_name,
                        client_version=self.config.client_version,
                        client_description=self.config.client_description,
                    )
                )
            case MessageType.GAME_OPTIONS:
                self._game_options = message.to_options()
                logger.info(
                    "Game options adopted: %dx%d board, %d ship class(es)",
                    self._game_options.board_width,
                    self._game_options.board_height,
                    len(self._game_options.ships),
                )
                self._send(message)
            case MessageType.NICK:
                self._on_nick(message)
            case MessageType.CHAT:
                self.listener.on_chat(message)
            case MessageType.BEGIN:
                self._on_begin(message)
            case MessageType.MOVE:
                self._on_move(message)
            case MessageType.NOTIFICATION:
                self._on_notification(message)
            case MessageType.GAME_OVER:
                self._on_game_over()
            case MessageType.RESTART:
                logger.info("Opponent requested a restart")
                self.listener.on_restart_requested()
            case MessageType.REJECT:
                self._on_reject(message)
            case _:
                assert_never(message.type)

    def _on_nick(self, message: NickMessage) -> None:
        self._require_inbound(message, GameState.DISCONNECTED)
        self._send(NickMessage(nickname=self.nickname))
        self._opponent = Player(is_self=False, nickname=message.nickname)
        self._set_phase(GameState.SHIP_SETUP)
        self.listener.on_connect(self._opponent)

    def _on_begin(self, message: Message) -> None:
        if self._phase is GameState.DISCONNECTED:
            self._reject_inbound(message)
        self._send(message)
        is_restart = self._phase is not GameState.SHIP_SETUP
        if self._shots:
            self._shots.reject_all(
                ProtocolViolationError("Game restarted before the shot was answered")
            )
        self._fired_at.clear()
        self._last_move = None
        self._turn_spent = False
        self._set_phase(GameState.FIRE_OTHER)
        self.listener.on_begin(is_restart)

    def _on_move(self, message: MoveMessage) -> None:
        if not (
            self._phase is GameState.FIRE_OTHER
            or (self._phase is GameState.FIRE_SELF and self._turn_spent)
        ):
            self._reject_inbound(message)
        self._last_move = message
        self._set_phase(GameState.AWAIT_RESPONSE_SELF)
        self.listener.on_move(message)

    def _on_notification(self, message: NotificationMessage) -> None:
        self._require_inbound(message, GameState.AWAIT_RESPONSE_OTHER)
        if message.coordinate not in self._shots:
            logger.warning(
                "Ignoring notification for %s, pending shot is at %s",
                message.coordinate,
                self._shots.coordinate,
            )
            return
        self._fired_at.add(message.coordinate)
        self._turn_spent = True
        self._set_phase(GameState.FIRE_SELF)
        self._shots.resolve(message)
        logger.info("Shot at %s: %s", message.coordinate, message.field_state)

    def _on_game_over(self) -> None:
        if self._shots:
            self._shots.reject_all(
                ProtocolViolationError("Game ended before the shot was answered")
            )
        self._set_phase(GameState.GAME_OVER)
        self.listener.on_game_over(self.me)

    def _on_reject(self, message: RejectMessage) -> None:
        error = ConnectionRejectedError(message)
        logger.warning("%s", error)
        self.listener.on_reject(message)
        self._transport.close()
        self.connection_lost(error)

    # Outbound

    def send_chat(self, text: str) -> None:
        """Send a chat line to the opponent. Legal in every phase."""
        self._send(ChatMessage(text=text, nickname=self.nickname))

    def fire_at(self, x: int, y: int) -> asyncio.Future[NotificationMessage]:
        """Fire at (x, y) on the opponent's board.

        Validation happens immediately; the returned future resolves with the
        opponent's Notification for exactly this coordinate. Must be called from
        a running event loop.

        Parameters
        ----------
        x, y : int
            Target coordinate

        Returns
        -------
        asyncio.Future[NotificationMessage]
            Await it for the outcome of the shot

        Raises
        ------
        ProtocolViolationError
            If it is not this player's turn to fire, a shot is already pending,
            this turn's shot has already been answered, the coordinate was
            already fired at this game, or it lies outside the board

        """
        self._ensure_open()
        coordinate = (x, y)
        if self._phase is not GameState.FIRE_SELF:
            raise ProtocolViolationError("Cannot fire right now", self._phase)
        if self._shots:
            raise ProtocolViolationError(
                f"A shot at {self._shots.coordinate} is already pending", self._phase
            )
        if self._turn_spent:
            raise ProtocolViolationError("Already fired this turn", self._phase)
        if coordinate in self._fired_at:
            raise ProtocolViolationError(f"Already fired at {coordinate}", self._phase)
        options = self._game_options
        if not (0 <= x < options.board_width and 0 <= y < options.board_height):
            raise ProtocolViolationError(
                f"{coordinate} is outside the "
                f"{options.board_width}x{options.board_height} board",
                self._phase,
            )

        future = self._shots.register(coordinate)
        try:
            self._send(MoveMessage(x=x, y=y))
        except PeerConnectionError:
            self._shots.discard(coordinate)
            raise
        self._set_phase(GameState.AWAIT_RESPONSE_OTHER)
        return future

    def respond_to_move(self, notification: NotificationMessage) -> None:
        """Answer the opponent's shot and take the turn.

        Parameters
        ----------
        notification : NotificationMessage
            Usually built with ``MoveMessage.respond``

        Raises
        ------
        ProtocolViolationError
            If no shot is awaiting an answer, or the notification is for a
            different coordinate than the opponent's shot

        """
        self._ensure_open()
        if self._phase is not GameState.AWAIT_RESPONSE_SELF:
            raise ProtocolViolationError("No shot to respond to", self._phase)
        expected = self._last_move
        if expected is not None and notification.coordinate != expected.coordinate:
            raise ProtocolViolationError(
                f"Response is for {notification.coordinate} but the opponent "
                f"fired at {expected.coordinate}",
                self._phase,
            )
        self._send(notification)
        self._last_move = None
        self._turn_spent = False
        self._set_phase(GameState.FIRE_SELF)
        self.listener.on_can_fire()

    def declare_game_over(self) -> None:
        """Concede: tell the opponent they won.

        Legal while answering the opponent's shot, or right after answering it
        and before firing.

        Raises
        ------
        ProtocolViolationError
            In any other phase

        """
        self._ensure_open()
        allowed = self._phase is GameState.AWAIT_RESPONSE_SELF or (
            self._phase is GameState.FIRE_SELF and not self._turn_spent
        )
        if not allowed:
            raise ProtocolViolationError(
                "Game over can only be declared after the opponent's shot", self._phase
            )
        self._send(GameOverMessage())
        self._last_move = None
        self._set_phase(GameState.GAME_OVER)
        winner = self._opponent or Player(is_self=False, nickname="")
        self.listener.on_game_over(winner)

    def request_restart(self) -> None:
        """Ask the opponent for a restart.

        The phase does not change; a restart shows up as a later Begin with
        ``is_restart=True``.
        """
        self._send(RestartMessage())

    # Connection lifecycle

    def close(self) -> None:
        """Close the transport and tear the session down."""
        if self._closed:
            return
        self._transport.close()
        self.connection_lost()

    def connection_lost(self, error: BaseException | None = None) -> None:
        """Tear the session down after the transport closed. Idempotent.

        Any pending shot is rejected with a PeerConnectionError.

        Parameters
        ----------
        error : BaseException | None
            What closed the connection; None for a clean close

        """
        if self._closed:
            return
        self._closed = True

        if isinstance(error, PeerConnectionError):
            connection_error: PeerConnectionError | None = error
        elif error is not None:
            connection_error = PeerConnectionError(
                f"Connection to opponent lost: {error}"
            )
            connection_error.__cause__ = error
        else:
            connection_error = None

        self._shots.reject_all(
            connection_error or PeerConnectionError("Connection to opponent closed")
        )
        self._opponent = None
        self._last_move = None
        self._turn_spent = False
        self._set_phase(GameState.DISCONNECTED)
        self.listener.on_disconnect(connection_error)

    # Helpers

    def _send(self, message: Message) -> None:
        self._ensure_open()
        logger.debug("SEND %s", message)
        self._transport.write(codec.encode(message))

    def _ensure_open(self) -> None:
        if self._closed:
            raise PeerConnectionError("Not connected to an opponent")

    def _set_phase(self, phase: GameState) -> None:
        if phase is not self._phase:
            logger.info("Phase: %s -> %s", self._phase.value, phase.value)
        self._phase = phase

    def _require_inbound(self, message: Message, *phases: GameState) -> None:
        if self._phase not in phases:
            self._reject_inbound(message)

    def _reject_inbound(self, message: Message) -> NoReturn:
        raise ProtocolViolationError(
            f"Unexpected {message.type.wire_name} from opponent", self._phase
        )

    def _on_shot_timeout(self, error: FireTimeoutError) -> None:
        if self._closed:
            return
        self._transport.close()
        self.connection_lost(error)
