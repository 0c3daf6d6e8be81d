# =============================================================================
# Ingest Gateway - Error Taxonomy
# =============================================================================
"""
Errors raised by the ingestion pipeline.

Each error knows the status code and the short message the caller sees.
The detailed cause stays on the exception and only reaches the logs.
Serialization, broker and timeout failures share one generic 500 response
but keep distinct ``log_event`` names for operators.
"""

from typing import Optional


class IngestError(Exception):
    """Base class for every rejection the gateway can produce."""

    status_code: int = 500
    public_message: str = "Internal Server Error"
    log_event: str = "ingest_failed"


class MethodNotAllowed(IngestError):
    status_code = 405
    public_message = "Method not allowed"
    log_event = "method_not_allowed"

    def __init__(self, method: str) -> None:
        super().__init__(f"method {method} not allowed")
        self.method = method


class PayloadTooLarge(IngestError):
    """Request body exceeded the configured limit."""

    status_code = 413
    public_message = "Request Entity Too Large"
    log_event = "payload_too_large"

    def __init__(self, limit: int) -> None:
        super().__init__(f"request body exceeds {limit} bytes")
        self.limit = limit


class BodyReadError(IngestError):
    """The request body stream failed before completion."""

    status_code = 400
    public_message = "Bad Request"
    log_event = "body_read_failed"

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"failed to read request body: {cause}")
        self.cause = cause


class InvalidPayload(IngestError):
    """The request body is not a syntactically valid JSON document."""

    status_code = 400
    public_message = "invalid JSON body"
    log_event = "invalid_json_body"

    def __init__(self, detail: str) -> None:
        super().__init__(f"invalid JSON payload: {detail}")
        self.detail = detail


class EnqueueError(IngestError):
    """Base for failures after validation; all map to a generic 500."""

    status_code = 500
    public_message = "Internal Server Error"
    log_event = "enqueue_failed"


class SerializationError(EnqueueError):
    log_event = "envelope_serialization_failed"


class BrokerSendError(EnqueueError):
    log_event = "broker_send_failed"


class EnqueueTimeout(EnqueueError):
    log_event = "enqueue_timeout"

    def __init__(self, timeout: float, message: Optional[str] = None) -> None:
        super().__init__(message or f"enqueue exceeded {timeout}s")
        self.timeout = timeout


class ProducerError(Exception):
    """Raised by broker clients when a message could not be delivered."""
