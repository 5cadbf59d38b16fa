"""
Growable receive buffer for streamed HTTP response bodies.

Accumulates the chunks of one HTTP exchange into a single contiguous,
NUL-terminated byte blob.  The buffer is owned by the session and reused for
every poll cycle: reset() empties it logically but keeps the allocation, and
capacity only ever grows.

Operations:
- reset(): Zero the content and make the full capacity available again.
- append(chunk): Copy a chunk at the write offset, growing if needed.
- value() / text: Accumulated content without the terminator.

CHANGELOG:
- 2026-10-17: Initial creation (STORY-003)

TODO:
- None
"""

from __future__ import annotations

import logging

from neurio.src.errors import ReceiveBufferError

logger = logging.getLogger(__name__)


class ReceiveBuffer:
    """Reusable byte buffer with explicit capacity accounting.

    Attributes:
        size: Allocated capacity in bytes (0 until the first append).
        length: Number of content bytes currently held.
        remaining: Free bytes left in the allocation, including the slot
            used by the terminating NUL.
    """

    def __init__(self) -> None:
        self._data = bytearray()
        self.size: int = 0
        self.length: int = 0
        self.remaining: int = 0

    def reset(self) -> None:
        """Logically empty the buffer, keeping its current capacity."""
        if self.size:
            self._data[:] = bytes(self.size)
        self.remaining = self.size
        self.length = 0

    def append(self, chunk: bytes) -> int:
        """Append *chunk* at the current write offset.

        Grows the allocation by ``len(chunk) + 1`` when the chunk and its
        terminator do not fit in the remaining space.  After every append the
        byte following the content is NUL.

        Args:
            chunk: Bytes received from the transport.

        Returns:
            The number of bytes consumed (always ``len(chunk)``).

        Raises:
            ReceiveBufferError: If the allocation could not grow.  Content,
                length and capacity are left as they were.
        """
        chunk_size = len(chunk)

        if chunk_size + 1 > self.remaining:
            try:
                self._data.extend(bytes(chunk_size + 1))
            except MemoryError as exc:
                logger.error(
                    "Receive buffer could not grow from %d by %d bytes",
                    self.size,
                    chunk_size + 1,
                )
                raise ReceiveBufferError("receive buffer out of memory") from exc
            self.size += chunk_size + 1
            self.remaining += chunk_size + 1

        offset = self.length
        self._data[offset : offset + chunk_size] = chunk
        self.remaining -= chunk_size
        self.length += chunk_size

        # NUL terminate
        self._data[self.length] = 0

        return chunk_size

    def value(self) -> bytes:
        """Return the accumulated content without the terminator."""
        return bytes(self._data[: self.length])

    def raw(self) -> bytes:
        """Return the content including its terminating NUL."""
        return bytes(self._data[: self.length + 1]) if self.size else b""

    @property
    def text(self) -> str:
        """Accumulated content decoded as UTF-8 (invalid bytes replaced)."""
        return self.value().decode("utf-8", errors="replace")

    def __len__(self) -> int:
        return self.length
