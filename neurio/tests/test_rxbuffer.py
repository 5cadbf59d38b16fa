"""
Unit tests for the growable receive buffer.

Tests verify:
- A fresh buffer has zero capacity; reset() on it keeps zero capacity.
- append() copies chunks contiguously and NUL terminates after every append.
- Capacity grows by chunk size + 1 only when a chunk does not fit.
- reset() keeps capacity, zeroes content, and makes all space available.
- Replaying the same chunks after reset() reproduces identical content.
- Capacity never shrinks across cycles of varying chunk sizes.
- Allocation failure raises ReceiveBufferError without corrupting state.

CHANGELOG:
- 2026-10-17: Initial creation (STORY-003)

TODO:
- None
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from neurio.src.errors import ReceiveBufferError, TransportError
from neurio.src.rxbuffer import ReceiveBuffer


class TestFreshBuffer:
    """A never-allocated buffer behaves as capacity zero."""

    def test_initial_counters_are_zero(self) -> None:
        buf = ReceiveBuffer()
        assert (buf.size, buf.length, buf.remaining) == (0, 0, 0)
        assert buf.value() == b""
        assert buf.text == ""

    def test_reset_without_allocation(self) -> None:
        buf = ReceiveBuffer()
        buf.reset()
        assert (buf.size, buf.length, buf.remaining) == (0, 0, 0)
        assert buf.raw() == b""


class TestAppend:
    """append() accumulates chunks into one terminated blob."""

    def test_first_append_grows_by_chunk_plus_one(self) -> None:
        buf = ReceiveBuffer()
        consumed = buf.append(b"hello")

        assert consumed == 5
        assert buf.size == 6
        assert buf.length == 5
        assert buf.remaining == 1
        assert buf.raw() == b"hello\x00"

    def test_chunks_are_contiguous(self) -> None:
        buf = ReceiveBuffer()
        for chunk in (b'{"chan', b'nels"', b": []}"):
            buf.append(chunk)

        assert buf.text == '{"channels": []}'
        assert buf.raw().endswith(b"\x00")

    def test_fitting_chunk_does_not_grow(self) -> None:
        buf = ReceiveBuffer()
        buf.append(b"x" * 100)
        buf.reset()
        size = buf.size

        buf.append(b"y" * 40)
        buf.append(b"z" * 40)

        assert buf.size == size
        assert buf.length == 80
        assert buf.remaining == size - 80
        assert buf.text == "y" * 40 + "z" * 40

    def test_terminator_always_inside_allocation(self) -> None:
        """A chunk filling the remaining space exactly still gets a NUL."""
        buf = ReceiveBuffer()
        buf.append(b"abc")  # size 4, remaining 1
        buf.append(b"d")

        assert buf.text == "abcd"
        assert buf.raw() == b"abcd\x00"
        assert buf.length < buf.size

    def test_empty_chunk_is_accepted(self) -> None:
        buf = ReceiveBuffer()
        assert buf.append(b"") == 0
        assert buf.raw() == b"\x00"

    def test_invalid_utf8_is_replaced_in_text(self) -> None:
        buf = ReceiveBuffer()
        buf.append(b"ok\xff")
        assert buf.text == "ok\ufffd"
        assert len(buf) == 3


class TestReset:
    """reset() logically empties the buffer but keeps its allocation."""

    def test_reset_keeps_capacity_and_clears_content(self) -> None:
        buf = ReceiveBuffer()
        buf.append(b"previous response")
        size = buf.size

        buf.reset()

        assert buf.size == size
        assert buf.length == 0
        assert buf.remaining == size
        assert buf.value() == b""
        assert buf._data == bytearray(size)

    def test_replay_after_reset_is_identical(self) -> None:
        chunks = [b'{"channels":[', b'{"p_W":359}', b"]}"]
        buf = ReceiveBuffer()
        for chunk in chunks:
            buf.append(chunk)
        first = buf.raw()

        buf.reset()
        for chunk in chunks:
            buf.append(chunk)

        assert buf.raw() == first

    def test_capacity_is_monotonic(self) -> None:
        buf = ReceiveBuffer()
        sizes = []
        for cycle in ([300], [10, 10], [50, 400, 2], [1], [], [1000, 1000]):
            buf.reset()
            for n in cycle:
                buf.append(b"a" * n)
            sizes.append(buf.size)

        assert sizes == sorted(sizes)
        assert buf.size >= 2000


class TestGrowthFailure:
    """Allocation failure aborts the exchange without corrupting prior state."""

    def test_memory_error_raises_receive_buffer_error(self) -> None:
        buf = ReceiveBuffer()
        buf.append(b"kept")
        before = (buf.size, buf.length, buf.remaining, buf.raw())

        class _FailingBytearray(bytearray):
            def extend(self, _data: object) -> None:
                raise MemoryError

        buf._data = _FailingBytearray(buf._data)

        with pytest.raises(ReceiveBufferError):
            buf.append(b"x" * 64)

        assert (buf.size, buf.length, buf.remaining, buf.raw()) == before

    def test_receive_buffer_error_is_transport_error(self) -> None:
        assert issubclass(ReceiveBufferError, TransportError)

    def test_growth_failure_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        buf = ReceiveBuffer()
        with patch.object(buf, "_data") as data:
            data.extend.side_effect = MemoryError
            with pytest.raises(ReceiveBufferError):
                buf.append(b"abc")

        assert any("could not grow" in r.getMessage() for r in caplog.records)
