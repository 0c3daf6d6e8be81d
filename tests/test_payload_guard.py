# =============================================================================
# Ingest Gateway - Payload Guard Tests
# =============================================================================
"""Unit tests for the bounded body reader."""

import asyncio

import pytest

from ingest_gateway.errors import BodyReadError, PayloadTooLarge
from ingest_gateway.services import PayloadGuard


class TrackedStream:
    """Async generator wrapper recording how far it was read and whether it closed."""

    def __init__(self, chunks, error=None):
        self.chunks = chunks
        self.error = error
        self.yielded = 0
        self.closed = False

    async def stream(self):
        try:
            for chunk in self.chunks:
                self.yielded += 1
                yield chunk
            if self.error is not None:
                raise self.error
        finally:
            self.closed = True


def read(guard, stream, declared_length=None):
    return asyncio.run(guard.read(stream, declared_length))


class TestPayloadGuard:
    """Tests for PayloadGuard.read."""

    def test_returns_exact_bytes(self):
        source = TrackedStream([b'{"a":', b"1}"])

        body = read(PayloadGuard(max_bytes=64), source.stream())

        assert body == b'{"a":1}'
        assert source.closed

    def test_empty_body(self):
        source = TrackedStream([])

        assert read(PayloadGuard(max_bytes=64), source.stream()) == b""
        assert source.closed

    def test_body_at_limit(self):
        source = TrackedStream([b"x" * 10])

        assert read(PayloadGuard(max_bytes=10), source.stream()) == b"x" * 10

    def test_stops_reading_once_over_limit(self):
        """The stream is abandoned at the first chunk that crosses the limit."""
        source = TrackedStream([b"x" * 6, b"x" * 6, b"x" * 6, b"x" * 6])

        with pytest.raises(PayloadTooLarge) as exc_info:
            read(PayloadGuard(max_bytes=10), source.stream())

        assert exc_info.value.limit == 10
        assert exc_info.value.status_code == 413
        assert source.yielded == 2
        assert source.closed

    def test_declared_length_over_limit_fails_before_reading(self):
        source = TrackedStream([b"x"])

        with pytest.raises(PayloadTooLarge):
            read(PayloadGuard(max_bytes=10), source.stream(), declared_length=11)

        assert source.yielded == 0

    def test_stream_error_is_wrapped(self):
        cause = ConnectionResetError("peer went away")
        source = TrackedStream([b"{"], error=cause)

        with pytest.raises(BodyReadError) as exc_info:
            read(PayloadGuard(max_bytes=64), source.stream())

        assert exc_info.value.cause is cause
        assert exc_info.value.status_code == 400
        assert source.closed

    def test_rejects_non_positive_limit(self):
        with pytest.raises(ValueError):
            PayloadGuard(max_bytes=0)
