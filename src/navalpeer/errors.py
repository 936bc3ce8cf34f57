"""Exception hierarchy for the naval battle peer.

Each exception stores the context needed to log it without re-deriving state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from navalpeer.peer.session import GameState
    from navalpeer.protocol.messages import RejectMessage


class NavalPeerError(Exception):
    """Base exception for all navalpeer errors."""


class DecodeError(NavalPeerError, ValueError):
    """Raised when wire input is malformed or names an unknown message type."""


class ProtocolViolationError(NavalPeerError):
    """Raised when a message or call is illegal in the current phase.

    Attributes
    ----------
    phase : GameState | None
        Phase the session was in when the violation was detected

    """

    def __init__(self, message: str, phase: GameState | None = None) -> None:
        self.phase = phase
        if phase is not None:
            message = f"{message} (phase: {phase.value})"
        super().__init__(message)


class PeerConnectionError(NavalPeerError, ConnectionError):
    """Raised when the connection to the opponent fails or closes."""


class ConnectionRejectedError(PeerConnectionError):
    """Raised when the opponent refuses the connection with a Reject message."""

    def __init__(self, reject: RejectMessage) -> None:
        self.reject = reject
        reason = reject.reason or "no reason given"
        if reject.version_mismatch:
            reason = f"version mismatch: {reason}"
        super().__init__(f"Opponent rejected the connection ({reason})")


class FireTimeoutError(PeerConnectionError):
    """Raised when the opponent does not answer a shot before the deadline."""

    def __init__(self, coordinate: tuple[int, int], timeout_seconds: float) -> None:
        self.coordinate = coordinate
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"No response to shot at {coordinate} within {timeout_seconds} seconds"
        )
