"""Unit tests for MessageFramer."""

import pytest

from navalpeer.errors import DecodeError
from navalpeer.protocol import codec
from navalpeer.protocol.framing import MessageFramer
from navalpeer.protocol.messages import MoveMessage, NickMessage


def test_feed_single_document():
    framer = MessageFramer()
    data = codec.encode(NickMessage(nickname="A"))

    frames = framer.feed(data)

    assert frames == [data]
    assert framer.pending_bytes == 0


def test_feed_split_document():
    """Test that a document split across reads is returned once complete."""
    framer = MessageFramer()
    data = codec.encode(MoveMessage(x=1, y=2))

    assert framer.feed(data[:10]) == []
    assert framer.pending_bytes == 10
    assert framer.feed(data[10:]) == [data]
    assert framer.pending_bytes == 0


def test_feed_several_documents_in_one_read():
    """Test that documents sharing a read come back in order."""
    framer = MessageFramer()
    first = codec.encode(NickMessage(nickname="A"))
    second = codec.encode(MoveMessage(x=3, y=4))

    frames = framer.feed(first + b"\n" + second + b"\n" + second[:5])

    assert [codec.decode(frame) for frame in frames] == [
        NickMessage(nickname="A"),
        MoveMessage(x=3, y=4),
    ]
    assert framer.pending_bytes == 5


def test_feed_discards_trailing_whitespace():
    framer = MessageFramer()

    framer.feed(codec.encode(NickMessage(nickname="A")) + b"\n  \n")

    assert framer.pending_bytes == 0


def test_feed_oversized_document_raises_and_resets():
    """Test that an unterminated document past the limit is dropped."""
    framer = MessageFramer(max_frame_bytes=32)

    with pytest.raises(DecodeError):
        framer.feed(b"<kmessage>" + b"x" * 64)

    assert framer.pending_bytes == 0
    # The stream recovers with the next complete document
    data = codec.encode(NickMessage(nickname="B"))
    assert framer.feed(data) == [data]


def test_reset_discards_partial_document():
    framer = MessageFramer()
    framer.feed(b"<kmessage><msgtype>")

    framer.reset()

    assert framer.pending_bytes == 0


def test_pending_bytes_skip_separating_whitespace():
    """Test that whitespace before a partial document is not buffered."""
    framer = MessageFramer()

    framer.feed(codec.encode(NickMessage(nickname="A")) + b"\r\n\t <!DOC")

    assert framer.pending_bytes == len(b"<!DOC")
