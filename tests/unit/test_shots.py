"""Unit tests for ShotTable."""

import asyncio
import gc

import pytest

from navalpeer.errors import FireTimeoutError, PeerConnectionError
from navalpeer.peer.shots import ShotTable
from navalpeer.protocol.messages import MoveMessage


@pytest.mark.asyncio
async def test_register_and_resolve():
    shots = ShotTable()

    future = shots.register((3, 4))

    assert len(shots) == 1
    assert (3, 4) in shots
    assert shots.coordinate == (3, 4)
    notification = MoveMessage(x=3, y=4).respond("hit")
    assert shots.resolve(notification)
    assert await future == notification
    assert len(shots) == 0
    assert shots.coordinate is None


@pytest.mark.asyncio
async def test_resolve_ignores_other_coordinate():
    """Test that a notification for another coordinate leaves the shot pending."""
    shots = ShotTable()
    future = shots.register((3, 4))

    assert not shots.resolve(MoveMessage(x=5, y=6).respond("miss"))

    assert not future.done()
    assert shots.coordinate == (3, 4)


@pytest.mark.asyncio
async def test_register_refuses_second_shot():
    shots = ShotTable()
    shots.register((0, 0))

    with pytest.raises(RuntimeError):
        shots.register((1, 1))


@pytest.mark.asyncio
async def test_reject_all():
    shots = ShotTable()
    future = shots.register((0, 0))

    shots.reject_all(PeerConnectionError("gone"))

    with pytest.raises(PeerConnectionError):
        await future
    assert len(shots) == 0


@pytest.mark.asyncio
async def test_discard_cancels_future():
    shots = ShotTable()
    future = shots.register((0, 0))

    shots.discard((0, 0))

    assert future.cancelled()
    assert len(shots) == 0
    with pytest.raises(asyncio.CancelledError):
        await future


@pytest.mark.asyncio
async def test_unanswered_shot_expires():
    """Test that a shot past its deadline fails and reports the timeout."""
    timeouts = []
    shots = ShotTable(timeout_seconds=0.05, on_timeout=timeouts.append)

    future = shots.register((3, 4))

    with pytest.raises(FireTimeoutError) as exc_info:
        await asyncio.wait_for(future, timeout=1)
    assert exc_info.value.coordinate == (3, 4)
    assert timeouts == [exc_info.value]
    assert len(shots) == 0


@pytest.mark.asyncio
async def test_answered_shot_never_expires():
    timeouts = []
    shots = ShotTable(timeout_seconds=0.05, on_timeout=timeouts.append)
    future = shots.register((3, 4))

    shots.resolve(MoveMessage(x=3, y=4).respond("miss"))
    await asyncio.sleep(0.1)

    assert future.result().coordinate == (3, 4)
    assert timeouts == []


@pytest.mark.asyncio
async def test_rejected_shot_expires_no_more():
    timeouts = []
    shots = ShotTable(timeout_seconds=0.05, on_timeout=timeouts.append)
    future = shots.register((0, 0))

    shots.reject_all(PeerConnectionError("gone"))
    await asyncio.sleep(0.1)

    assert isinstance(future.exception(), PeerConnectionError)
    assert timeouts == []


@pytest.mark.asyncio
async def test_unawaited_rejection_is_not_reported_to_the_loop():
    """Test that rejecting a shot nobody awaits leaves no unretrieved exception."""
    loop = asyncio.get_running_loop()
    reported = []
    loop.set_exception_handler(lambda _loop, context: reported.append(context))
    try:
        shots = ShotTable()
        shots.register((0, 0))

        shots.reject_all(PeerConnectionError("gone"))
        await asyncio.sleep(0)
        gc.collect()
    finally:
        loop.set_exception_handler(None)

    assert reported == []
