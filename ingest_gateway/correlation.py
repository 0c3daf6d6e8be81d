"""
Per-request correlation context.

The request middleware creates one CorrelationContext per request and stores
it on ``request.state.correlation``; the ingestion handler reads it from
there to enrich its log records.
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

# Longer inbound ids are replaced to keep log lines and headers bounded
MAX_CORRELATION_ID_LENGTH = 128


@dataclass(frozen=True)
class CorrelationContext:
    """Correlation id plus the monotonic instant the request arrived."""

    correlation_id: str
    start_time: float = field(default_factory=time.perf_counter)

    @classmethod
    def from_header(cls, value: Optional[str]) -> "CorrelationContext":
        """Reuse a caller-supplied id when usable, otherwise generate one."""
        if value and len(value) <= MAX_CORRELATION_ID_LENGTH:
            return cls(correlation_id=value)
        return cls(correlation_id=generate_correlation_id())

    def elapsed_ms(self) -> float:
        return round((time.perf_counter() - self.start_time) * 1000.0, 2)


def generate_correlation_id() -> str:
    return str(uuid.uuid4())
