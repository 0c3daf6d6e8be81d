"""HTTP layer: routes, ingestion handler and request middleware."""

from .middleware import RequestLoggingMiddleware, ResponseObserver
from .routes import IngestHandler, ingest_error_handler, router

__all__ = [
    "IngestHandler",
    "RequestLoggingMiddleware",
    "ResponseObserver",
    "ingest_error_handler",
    "router",
]
