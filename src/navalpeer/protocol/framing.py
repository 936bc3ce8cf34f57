"""Split an inbound byte stream into kmessage documents.

The protocol has no length prefix: a document ends at its closing root tag, and
one read from the transport may hold part of a document or several of them.
"""

import logging

from navalpeer.errors import DecodeError
from navalpeer.settings import settings

logger = logging.getLogger(__name__)

END_TAG = b"</kmessage>"


class MessageFramer:
    """Buffer inbound bytes and yield complete documents.

    Parameters
    ----------
    max_frame_bytes : int | None
        Largest allowed unterminated document. Defaults to
        ``settings.max_frame_bytes``.

    """

    def __init__(self, max_frame_bytes: int | None = None) -> None:
        self.max_frame_bytes = max_frame_bytes or settings.max_frame_bytes
        self._buffer = bytearray()

    @property
    def pending_bytes(self) -> int:
        """Number of buffered bytes not yet part of a complete document."""
        return len(self._buffer)

    def feed(self, data: bytes) -> list[bytes]:
        """Add received bytes and return every document they complete.

        Parameters
        ----------
        data : bytes
            Bytes as delivered by the transport

        Returns
        -------
        list[bytes]
            Complete documents in arrival order, each ending with the closing tag

        Raises
        ------
        DecodeError
            If the unterminated remainder exceeds ``max_frame_bytes``. The
            buffer is discarded so the stream can resynchronise.

        """
        self._buffer.extend(data)
        frames: list[bytes] = []

        while (end := self._buffer.find(END_TAG)) != -1:
            end += len(END_TAG)
            frame = bytes(self._buffer[:end]).strip()
            del self._buffer[:end]
            if frame:
                frames.append(frame)

        # Whitespace between documents is not part of the next one
        del self._buffer[: len(self._buffer) - len(self._buffer.lstrip())]
        if len(self._buffer) > self.max_frame_bytes:
            size = len(self._buffer)
            self._buffer.clear()
            raise DecodeError(
                f"Unterminated message exceeds {self.max_frame_bytes} bytes ({size})"
            )

        if frames:
            logger.debug(
                "Framed %d message(s), %d bytes pending", len(frames), len(self._buffer)
            )
        return frames

    def reset(self) -> None:
        """Discard any partially received document."""
        self._buffer.clear()
