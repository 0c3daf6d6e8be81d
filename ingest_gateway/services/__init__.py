# =============================================================================
# Ingest Gateway - Services Package
# =============================================================================
"""Ingestion pipeline steps and broker integrations."""

from .broker import Producer, build_producer
from .envelope import EnvelopeBuilder
from .kafka import KafkaProducer
from .payload_guard import PayloadGuard
from .pubsub import PubSubProducer

__all__ = [
    "EnvelopeBuilder",
    "KafkaProducer",
    "PayloadGuard",
    "Producer",
    "PubSubProducer",
    "build_producer",
]
