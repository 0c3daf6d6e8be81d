# =============================================================================
# Ingest Gateway - Package Initialization
# =============================================================================
"""
Ingest Gateway Service

A single-endpoint ingestion gateway that accepts arbitrary JSON payloads,
wraps each one in a job envelope, and hands it to a message broker for
asynchronous processing.
"""

__version__ = "1.0.0"
