"""Correlation of outbound shots with their Notification answers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from navalpeer.errors import FireTimeoutError

if TYPE_CHECKING:
    from collections.abc import Callable

    from navalpeer.protocol.messages import Coordinate, NotificationMessage

logger = logging.getLogger(__name__)


def _retrieve_exception(future: asyncio.Future) -> None:
    # Marks the exception as seen when the caller never awaits the shot
    if not future.cancelled():
        future.exception()


@dataclass(slots=True)
class PendingShot:
    """Future for one outstanding shot and its optional deadline."""

    future: asyncio.Future[NotificationMessage]
    deadline: asyncio.TimerHandle | None = None

    def settle(self) -> None:
        if self.deadline is not None:
            self.deadline.cancel()
            self.deadline = None

    def fail(self, error: BaseException) -> None:
        self.settle()
        if not self.future.done():
            self.future.set_exception(error)
            self.future.add_done_callback(_retrieve_exception)


class ShotTable:
    """Pending shots keyed by coordinate, holding at most one entry.

    Only one shot may be fired per turn, so a second registration while one is
    outstanding is refused rather than queued.

    Parameters
    ----------
    timeout_seconds : float | None
        How long a shot may stay unanswered. None disables the deadline.
    on_timeout : Callable[[FireTimeoutError], None] | None
        Called after an expired shot has been failed with the error

    """

    capacity = 1

    def __init__(
        self,
        timeout_seconds: float | None = None,
        on_timeout: Callable[[FireTimeoutError], None] | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self._on_timeout = on_timeout
        self._pending: dict[Coordinate, PendingShot] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, coordinate: object) -> bool:
        return coordinate in self._pending

    @property
    def coordinate(self) -> Coordinate | None:
        """Coordinate of the outstanding shot, or None."""
        return next(iter(self._pending), None)

    def register(self, coordinate: Coordinate) -> asyncio.Future[NotificationMessage]:
        """Create the future that the matching Notification will resolve.

        Must be called from a running event loop. With a timeout configured,
        the deadline starts now.

        Raises
        ------
        RuntimeError
            If the table is already at capacity

        """
        if len(self._pending) >= self.capacity:
            raise RuntimeError(f"A shot at {self.coordinate} is already pending")
        loop = asyncio.get_running_loop()
        shot = PendingShot(loop.create_future())
        if self.timeout_seconds:
            shot.deadline = loop.call_later(
                self.timeout_seconds, self._expire, coordinate
            )
        self._pending[coordinate] = shot
        return shot.future

    def resolve(self, notification: NotificationMessage) -> bool:
        """Resolve the pending shot that matches the notification's coordinate.

        Returns
        -------
        bool
            True if a pending shot was resolved, False if the notification
            matched nothing

        """
        shot = self._pending.pop(notification.coordinate, None)
        if shot is None:
            return False
        shot.settle()
        if not shot.future.done():
            shot.future.set_result(notification)
        return True

    def discard(self, coordinate: Coordinate) -> None:
        """Drop a pending shot without resolving it, cancelling its future."""
        shot = self._pending.pop(coordinate, None)
        if shot is not None:
            shot.settle()
            shot.future.cancel()

    def reject_all(self, error: BaseException) -> None:
        """Fail every outstanding shot with ``error`` and empty the table."""
        for coordinate, shot in self._pending.items():
            logger.debug("Rejecting pending shot at %s: %s", coordinate, error)
            shot.fail(error)
        self._pending.clear()

    def _expire(self, coordinate: Coordinate) -> None:
        shot = self._pending.pop(coordinate, None)
        if shot is None:
            return
        error = FireTimeoutError(coordinate, self.timeout_seconds or 0)
        logger.warning("%s", error)
        shot.fail(error)
        if self._on_timeout is not None:
            self._on_timeout(error)
