# =============================================================================
# Ingest Gateway - Payload Guard
# =============================================================================
"""
Bounded request-body reader.

Reads a body stream chunk by chunk and stops as soon as the running total
passes the configured ceiling, so an oversized upload is never buffered in
full.
"""

from contextlib import aclosing
from typing import AsyncIterator, Optional

from ..errors import BodyReadError, IngestError, PayloadTooLarge


DEFAULT_MAX_PAYLOAD_BYTES = 1 << 20


class PayloadGuard:
    """
    Enforces a maximum request-body size.

    Attributes:
        max_bytes: Largest body, in bytes, that will be returned
    """

    def __init__(self, max_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES) -> None:
        if max_bytes <= 0:
            raise ValueError("max_bytes must be greater than zero")
        self.max_bytes = max_bytes

    async def read(
        self,
        stream: AsyncIterator[bytes],
        declared_length: Optional[int] = None,
    ) -> bytes:
        """
        Read the whole body, failing once it passes ``max_bytes``.

        The stream is closed on every return path.

        Args:
            stream: Async generator yielding body chunks
            declared_length: Content-Length sent by the caller, if any

        Returns:
            bytes: The exact bytes read (possibly empty)

        Raises:
            PayloadTooLarge: The body (or its declared length) exceeds the limit
            BodyReadError: The stream failed before end-of-stream
        """
        async with aclosing(stream) as chunks:
            if declared_length is not None and declared_length > self.max_bytes:
                raise PayloadTooLarge(self.max_bytes)

            body = bytearray()
            try:
                async for chunk in chunks:
                    body.extend(chunk)
                    if len(body) > self.max_bytes:
                        raise PayloadTooLarge(self.max_bytes)
            except IngestError:
                raise
            except Exception as e:
                raise BodyReadError(e) from e

        return bytes(body)
