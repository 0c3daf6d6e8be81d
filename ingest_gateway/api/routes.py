"""
Ingest Gateway - Route Handlers

Handles the /ingest endpoint: method check, bounded body read, JSON
validation, and a timeout-governed handoff to the broker.
"""

import asyncio
from typing import Awaitable, Callable, Optional

import orjson
import structlog
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from .. import __version__
from ..correlation import CorrelationContext
from ..errors import (
    BodyReadError,
    BrokerSendError,
    EnqueueError,
    EnqueueTimeout,
    IngestError,
    InvalidPayload,
    MethodNotAllowed,
    PayloadTooLarge,
    ProducerError,
    SerializationError,
)
from ..models import HealthResponse, IngestResponse, JobEnvelope, generate_job_id
from ..services import EnvelopeBuilder, PayloadGuard, Producer


router = APIRouter()

# nginx convention for "client closed request"; never reaches the caller
CLIENT_CLOSED_REQUEST = 499


class IngestHandler:
    """
    Orchestrates one ingestion request.

    Steps, in order: method check, payload guard, envelope builder,
    bounded send to the broker, 202 response. Any step may reject the
    request by raising an IngestError.

    Attributes:
        producer: Shared broker client
        logger: Logger used for per-request records
        guard: Bounded body reader
        builder: Envelope builder
        enqueue_timeout: Seconds allowed for the broker send
    """

    def __init__(
        self,
        producer: Producer,
        logger: structlog.stdlib.BoundLogger,
        max_payload_bytes: int = 1 << 20,
        enqueue_timeout: float = 5.0,
        builder: Optional[EnvelopeBuilder] = None,
    ) -> None:
        self.producer = producer
        self.logger = logger
        self.guard = PayloadGuard(max_payload_bytes)
        self.builder = builder or EnvelopeBuilder()
        self.enqueue_timeout = enqueue_timeout

    async def handle(self, request: Request) -> Response:
        """
        Run the ingestion pipeline for ``request``.

        Returns:
            Response: 202 with the job id, or 499 if the caller went away
            during the broker send

        Raises:
            IngestError: On any rejection
        """
        if request.method != "POST":
            raise MethodNotAllowed(request.method)

        correlation = getattr(request.state, "correlation", None)
        if correlation is None:
            correlation = CorrelationContext.from_header(None)
        logger = self.logger.bind(request_id=correlation.correlation_id)

        try:
            body = await self.guard.read(request.stream(), _declared_length(request))
        except PayloadTooLarge as e:
            logger.warning(e.log_event, max_payload=e.limit)
            raise
        except BodyReadError as e:
            logger.error(
                e.log_event,
                error=str(e.cause),
                error_type=type(e.cause).__name__,
            )
            raise

        job_id = generate_job_id()
        logger = logger.bind(job_id=job_id)

        try:
            envelope = self.builder.build(job_id, body)
        except InvalidPayload as e:
            logger.warning(e.log_event, error=e.detail)
            raise

        try:
            enqueued = await self.enqueue(
                envelope,
                wait_for_disconnect=lambda: _wait_for_disconnect(request),
            )
        except EnqueueError as e:
            logger.error(
                e.log_event,
                error=str(e),
                cause=type(e.__cause__).__name__ if e.__cause__ else None,
            )
            raise

        if not enqueued:
            logger.warning("enqueue_cancelled", reason="client_disconnected")
            return Response(status_code=CLIENT_CLOSED_REQUEST)

        logger.info("message_enqueued", size=len(body))
        return JSONResponse(
            content=IngestResponse(job_id=job_id).model_dump(),
            status_code=status.HTTP_202_ACCEPTED,
        )

    async def enqueue(
        self,
        envelope: JobEnvelope,
        wait_for_disconnect: Callable[[], Awaitable[None]],
    ) -> bool:
        """
        Serialize ``envelope`` and hand it to the producer.

        The send is raced against the enqueue timeout and against the
        caller disconnecting; the losing send is cancelled. At most one
        send is attempted.

        Args:
            envelope: The job envelope
            wait_for_disconnect: Coroutine function that returns once the
                caller has disconnected

        Returns:
            bool: True once the broker accepted the message, False if the
            caller disconnected first

        Raises:
            SerializationError: The envelope could not be encoded
            BrokerSendError: The producer reported a failure
            EnqueueTimeout: The send did not finish within the timeout
        """
        try:
            message = envelope.to_message_bytes()
        except orjson.JSONEncodeError as e:
            raise SerializationError(str(e)) from e

        send = asyncio.ensure_future(self.producer.send(envelope.job_id, message))
        disconnect = asyncio.ensure_future(wait_for_disconnect())
        try:
            done, _ = await asyncio.wait(
                {send, disconnect},
                timeout=self.enqueue_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            disconnect.cancel()
            if not send.done():
                send.cancel()

        if send in done:
            try:
                send.result()
            except ProducerError as e:
                raise BrokerSendError(str(e)) from e
            except Exception as e:
                raise BrokerSendError(f"{type(e).__name__}: {e}") from e
            return True
        if disconnect in done:
            return False
        raise EnqueueTimeout(self.enqueue_timeout)


def _declared_length(request: Request) -> Optional[int]:
    value = request.headers.get("content-length")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


async def _wait_for_disconnect(request: Request) -> None:
    # Only called once the body has been fully consumed
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return


def get_ingest_handler(request: Request) -> IngestHandler:
    """Handler built once by the application factory."""
    return request.app.state.ingest_handler


async def ingest_error_handler(request: Request, exc: IngestError) -> Response:
    """Turn a rejection into a short plain-text response."""
    headers = {"Allow": "POST"} if isinstance(exc, MethodNotAllowed) else None
    return PlainTextResponse(
        exc.public_message,
        status_code=exc.status_code,
        headers=headers,
    )


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request) -> HealthResponse:
    """Health check for load balancers."""
    settings = request.app.state.settings
    return HealthResponse(service=settings.service_name, version=__version__)


@router.post(
    "/ingest",
    response_model=IngestResponse,
    status_code=status.HTTP_202_ACCEPTED,
    tags=["Ingestion"],
)
async def ingest(
    request: Request,
    handler: IngestHandler = Depends(get_ingest_handler),
) -> Response:
    """
    Accept an arbitrary JSON document for asynchronous processing.

    Returns 202 with a generated job id once the document is queued.
    Each call creates a new job; identical bodies are not deduplicated.
    """
    return await handler.handle(request)


async def ingest_other_methods(request: Request) -> Response:
    """Any other verb on /ingest; the handler answers with its 405."""
    return await get_ingest_handler(request).handle(request)


# A plain route without a method list matches every verb, including
# non-standard ones, so FastAPI's JSON 405 is never produced for /ingest
router.add_route("/ingest", ingest_other_methods, include_in_schema=False)
