# =============================================================================
# Ingest Gateway - Kafka Producer
# =============================================================================
"""
Kafka broker client built on aiokafka.

Messages are keyed by job id so the default hashing partitioner keeps all
records for a job on one partition. Every send waits for acknowledgement
from all in-sync replicas.
"""

from typing import List, Optional

import structlog
from aiokafka import AIOKafkaProducer
from aiokafka.errors import KafkaError

from ..errors import ProducerError


class KafkaProducer:
    """
    Shared Kafka producer.

    The aiokafka client needs a running event loop, so it is created in
    ``start()`` rather than in the constructor.

    Attributes:
        brokers: Bootstrap endpoints
        topic: Destination topic
        client_id: Client id reported to the cluster
    """

    def __init__(
        self,
        brokers: List[str],
        topic: str,
        client_id: str = "ingest-gateway",
        logger: Optional[structlog.stdlib.BoundLogger] = None,
    ) -> None:
        self.brokers = brokers
        self.topic = topic
        self.client_id = client_id
        self.logger = logger or structlog.get_logger(__name__)
        self._producer: Optional[AIOKafkaProducer] = None

    async def start(self) -> None:
        """
        Connect to the cluster.

        Raises:
            ProducerError: If the bootstrap servers cannot be reached
        """
        if self._producer is not None:
            return
        producer = AIOKafkaProducer(
            bootstrap_servers=self.brokers,
            client_id=self.client_id,
            acks="all",
            linger_ms=10,
            request_timeout_ms=10_000,
        )
        try:
            await producer.start()
        except KafkaError as e:
            self.logger.error(
                "kafka_start_failed",
                brokers=self.brokers,
                error=str(e),
            )
            await producer.stop()
            raise ProducerError(f"Failed to connect to Kafka: {e}") from e

        self._producer = producer
        self.logger.info(
            "producer_started",
            backend="kafka",
            brokers=self.brokers,
            topic=self.topic,
        )

    async def send(self, key: str, value: bytes) -> None:
        """
        Publish one message and wait for the broker acknowledgement.

        Cancelling the awaiting task abandons the wait.

        Args:
            key: Partition key (the job id)
            value: Serialized envelope

        Raises:
            ProducerError: If the producer is not started or the send fails
        """
        if self._producer is None:
            raise ProducerError("Kafka producer is not started")

        try:
            metadata = await self._producer.send_and_wait(
                self.topic,
                value=value,
                key=key.encode("utf-8"),
            )
        except KafkaError as e:
            self.logger.error(
                "kafka_send_failed",
                topic=self.topic,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ProducerError(f"Failed to send message: {e}") from e

        self.logger.debug(
            "message_published",
            job_id=key,
            partition=metadata.partition,
            offset=metadata.offset,
        )

    async def close(self) -> None:
        if self._producer is None:
            return
        producer, self._producer = self._producer, None
        await producer.stop()
        self.logger.info("producer_stopped", backend="kafka")
