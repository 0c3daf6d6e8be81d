"""
Ingest Gateway - Request Middleware

Assigns the correlation id, times the request, and writes one structured
log record per request on every exit path. Implemented as plain ASGI
middleware so the response can be observed without buffering it.
"""

from typing import Optional

import structlog
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..correlation import CorrelationContext


class ResponseObserver:
    """
    Wraps an ASGI ``send`` callable and records what passes through.

    Messages are forwarded unchanged.

    Attributes:
        status: Status code from ``http.response.start``, once sent
        bytes_written: Total body bytes successfully forwarded
    """

    def __init__(self, send: Send) -> None:
        self._send = send
        self.status: Optional[int] = None
        self.bytes_written = 0

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.status = message["status"]
        await self._send(message)
        if message["type"] == "http.response.body":
            self.bytes_written += len(message.get("body", b""))


class RequestLoggingMiddleware:
    """
    Correlation id propagation plus access logging.

    - Reuses the id from ``header_name`` when present, otherwise generates one.
    - Stores a CorrelationContext on ``request.state.correlation``.
    - Echoes the id in the response headers.
    - Logs ``request_completed`` with status, duration and byte count.
    """

    def __init__(
        self,
        app: ASGIApp,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
        header_name: str = "X-Request-ID",
    ) -> None:
        self.app = app
        self.logger = logger or structlog.get_logger(__name__)
        self.header_name = header_name

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        correlation = CorrelationContext.from_header(
            Headers(scope=scope).get(self.header_name)
        )
        scope.setdefault("state", {})["correlation"] = correlation
        header = (
            self.header_name.lower().encode("latin-1"),
            correlation.correlation_id.encode("latin-1"),
        )

        async def send_with_correlation(message: Message) -> None:
            if message["type"] == "http.response.start":
                message["headers"] = list(message.get("headers") or []) + [header]
            await send(message)

        observer = ResponseObserver(send_with_correlation)
        try:
            await self.app(scope, receive, observer)
        finally:
            self.logger.info(
                "request_completed",
                request_id=correlation.correlation_id,
                method=scope.get("method"),
                path=scope.get("path"),
                remote_addr=_remote_addr(scope),
                # Nothing sent means the exception is about to become a 500
                status=observer.status if observer.status is not None else 500,
                duration_ms=correlation.elapsed_ms(),
                bytes=observer.bytes_written,
            )


def _remote_addr(scope: Scope) -> Optional[str]:
    client = scope.get("client")
    if not client:
        return None
    host, port = client
    return f"{host}:{port}"
