# =============================================================================
# Ingest Gateway - Shared Test Fixtures
# =============================================================================
"""Fixtures shared by the test modules."""

import asyncio
import logging
from typing import List, Optional, Tuple

import pytest
import structlog
from fastapi.testclient import TestClient

from ingest_gateway.config import Settings
from ingest_gateway.main import create_app


class FakeProducer:
    """
    Recording stand-in for the broker client.

    Attributes:
        calls: (key, value) pairs in the order send was called
        error: Exception raised by every send, if set
        delay: Seconds each send waits before completing
        cancelled: Number of sends cancelled while waiting
    """

    def __init__(self, error: Optional[Exception] = None, delay: float = 0.0) -> None:
        self.calls: List[Tuple[str, bytes]] = []
        self.error = error
        self.delay = delay
        self.cancelled = 0
        self.started = False
        self.closed = False

    async def start(self) -> None:
        self.started = True

    async def send(self, key: str, value: bytes) -> None:
        self.calls.append((key, value))
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        if self.error is not None:
            raise self.error

    async def close(self) -> None:
        self.closed = True


def make_logger(capture: structlog.testing.LogCapture):
    """Logger whose records end up in ``capture.entries``."""
    return structlog.wrap_logger(
        structlog.testing.CapturingLogger(),
        processors=[capture],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        cache_logger_on_first_use=False,
    )


def find_logs(capture: structlog.testing.LogCapture, event: str) -> list:
    return [entry for entry in capture.entries if entry["event"] == event]


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def settings():
    """Small limits so size tests stay cheap."""
    return Settings(
        _env_file=None,
        max_payload_bytes=1024,
        enqueue_timeout_seconds=0.2,
    )


@pytest.fixture
def producer():
    return FakeProducer()


@pytest.fixture
def log_capture():
    return structlog.testing.LogCapture()


@pytest.fixture
def logger(log_capture):
    return make_logger(log_capture)


@pytest.fixture
def app(settings, producer, logger):
    return create_app(settings=settings, producer=producer, logger=logger)


@pytest.fixture
def client(app):
    """Create test client."""
    return TestClient(app)
