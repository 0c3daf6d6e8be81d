# =============================================================================
# Ingest Gateway - Models Package
# =============================================================================
"""Pydantic models for envelopes and responses."""

from .schemas import (
    HealthResponse,
    IngestResponse,
    JobEnvelope,
    generate_job_id,
)

__all__ = [
    "HealthResponse",
    "IngestResponse",
    "JobEnvelope",
    "generate_job_id",
]
