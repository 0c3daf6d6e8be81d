# =============================================================================
# Ingest Gateway - Pydantic Schemas
# =============================================================================
"""
Data models for the Ingest Gateway.

The job envelope is the unit handed to the broker; the response models
document what callers and load balancers receive.
"""

from datetime import datetime, timezone
from uuid import uuid4

import orjson
from pydantic import BaseModel, ConfigDict, Field


class JobEnvelope(BaseModel):
    """
    Immutable wrapper placed around a client payload before transmission.

    The payload is kept as the raw request bytes. It has been checked for
    JSON syntax but never parsed into application structures, so downstream
    consumers see exactly what the caller sent.

    Attributes:
        job_id: Server-generated unique job identifier
        payload: Raw JSON document from the request body
        received_at: UTC instant the envelope was built

    Example wire form:
        {"job_id":"0b6f...","payload":{"a":1},"received_at":"2026-01-31T10:00:00.000000Z"}
    """

    model_config = ConfigDict(frozen=True)

    job_id: str = Field(..., min_length=1, description="Job identifier")
    payload: bytes = Field(..., description="Raw JSON payload")
    received_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Receipt timestamp (UTC)",
    )

    def to_message_bytes(self) -> bytes:
        """
        Serialize the envelope for the broker.

        The payload is embedded verbatim as a JSON fragment rather than
        re-encoded.

        Returns:
            bytes: Compact UTF-8 JSON representation

        Raises:
            orjson.JSONEncodeError: If the envelope cannot be encoded
        """
        return orjson.dumps(
            {
                "job_id": self.job_id,
                "payload": orjson.Fragment(self.payload),
                "received_at": self.received_at,
            },
            option=orjson.OPT_UTC_Z,
        )


class IngestResponse(BaseModel):
    """
    Response model for an accepted job.

    Acceptance means the envelope was handed to the broker, not that
    processing has finished.
    """

    job_id: str = Field(..., description="Assigned job identifier")


class HealthResponse(BaseModel):
    """
    Response model for health check endpoint.

    Attributes:
        status: Service health status
        service: Service name
        version: Service version
        timestamp: Current server time
    """

    status: str = Field(default="healthy", description="Health status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Current timestamp",
    )


def generate_job_id() -> str:
    """
    Generate a unique job identifier.

    Returns:
        str: Random UUID4 in canonical string form
    """
    return str(uuid4())
