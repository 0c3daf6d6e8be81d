# =============================================================================
# Ingest Gateway - Main Application
# =============================================================================
"""
Ingest Gateway

A single-endpoint ingestion gateway that accepts arbitrary JSON documents,
wraps each in a job envelope, and hands it to a message broker (Kafka or
Google Cloud Pub/Sub) for asynchronous processing.

Key Features:
- Non-blocking: Returns 202 Accepted with a job id once the broker has the message
- Bounded: Oversized bodies are rejected while streaming, before buffering
- Time-boxed: Each broker send is limited by the enqueue timeout
- Observable: One structured log record per request, keyed by request id
"""

import logging
import sys
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api import IngestHandler, RequestLoggingMiddleware, ingest_error_handler, router
from .config import Settings, get_settings
from .errors import IngestError
from .services import Producer, build_producer


# =============================================================================
# Logging Configuration
# =============================================================================

def configure_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging with structlog.

    Sets up JSON-formatted logs on stdout, routed through the standard
    library so third-party loggers (uvicorn, aiokafka) share the output.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level.upper(),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# =============================================================================
# Application Factory
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    producer: Optional[Producer] = None,
    logger: Optional[structlog.stdlib.BoundLogger] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Resolved configuration (read from the environment if None)
        producer: Broker client (built from settings if None)
        logger: Logger injected into the handler and middleware

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    if logger is None:
        configure_logging(settings.log_level)
        logger = structlog.get_logger("ingest_gateway")

    if producer is None:
        producer = build_producer(settings, logger=logger)

    app = FastAPI(
        title="Ingest Gateway",
        description="""
## Overview

Single-endpoint gateway that queues arbitrary JSON documents for
asynchronous processing.

## Contract

- `POST /ingest` returns **202 Accepted** with `{"job_id": "..."}` once the
  document has been handed to the broker, not once it is processed.
- Every call creates a new job; identical bodies are not deduplicated.
- The `X-Request-ID` header is honoured when supplied and always echoed.
        """,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.state.settings = settings
    app.state.producer = producer
    app.state.ingest_handler = IngestHandler(
        producer=producer,
        logger=logger,
        max_payload_bytes=settings.max_payload_bytes,
        enqueue_timeout=settings.enqueue_timeout_seconds,
    )

    app.add_exception_handler(IngestError, ingest_error_handler)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Added last so it wraps everything, CORS preflights included
    app.add_middleware(
        RequestLoggingMiddleware,
        logger=logger,
        header_name=settings.request_id_header,
    )

    app.include_router(router)

    # =========================================================================
    # Startup & Shutdown Events
    # =========================================================================

    @app.on_event("startup")
    async def startup_event() -> None:
        """Connect the broker client before serving requests."""
        await producer.start()
        logger.info("startup_complete", message="Ingest Gateway ready to accept requests")

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        """Flush and close the broker client."""
        logger.info("shutdown_initiated", message="Ingest Gateway shutting down")
        await producer.close()

    logger.info(
        "application_startup",
        service=settings.service_name,
        environment=settings.environment,
        broker_backend=settings.broker_backend,
        max_payload_bytes=settings.max_payload_bytes,
        enqueue_timeout_seconds=settings.enqueue_timeout_seconds,
    )

    return app


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()
