"""Session state machine and connection glue for a naval battle peer."""

from navalpeer.peer.client import NavalClient
from navalpeer.peer.session import GameState, Player, Session, SessionListener
from navalpeer.peer.shots import ShotTable
from navalpeer.peer.transport import StreamTransport, Transport

__all__ = [
    "GameState",
    "NavalClient",
    "Player",
    "Session",
    "SessionListener",
    "ShotTable",
    "StreamTransport",
    "Transport",
]
