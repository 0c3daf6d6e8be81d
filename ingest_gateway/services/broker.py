# =============================================================================
# Ingest Gateway - Broker Capability
# =============================================================================
"""
The narrow interface the ingestion handler needs from a message broker,
and the factory that builds the configured implementation.
"""

from typing import Optional, Protocol

import structlog

from ..config import Settings
from .kafka import KafkaProducer
from .pubsub import PubSubProducer


class Producer(Protocol):
    """
    Broker client shared by all in-flight requests.

    Implementations must be safe for concurrent use and raise
    ``ProducerError`` on delivery failure. Deadlines are enforced by the
    caller cancelling the awaiting task.
    """

    async def start(self) -> None: ...

    async def send(self, key: str, value: bytes) -> None: ...

    async def close(self) -> None: ...


def build_producer(
    settings: Settings,
    logger: Optional[structlog.stdlib.BoundLogger] = None,
) -> Producer:
    """
    Construct the broker client selected by ``settings.broker_backend``.

    Returns:
        Producer: An unstarted producer
    """
    if settings.broker_backend == "pubsub":
        return PubSubProducer(
            project_id=settings.gcp_project_id,
            topic_id=settings.pubsub_topic,
            logger=logger,
        )
    return KafkaProducer(
        brokers=settings.kafka_broker_list,
        topic=settings.kafka_topic,
        client_id=settings.kafka_client_id,
        logger=logger,
    )
