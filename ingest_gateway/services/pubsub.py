# =============================================================================
# Ingest Gateway - Pub/Sub Producer
# =============================================================================
"""
Google Cloud Pub/Sub broker client.

Publishes job envelopes with the job id as ordering key, with proper
error handling and structured logging.
"""

import asyncio
from typing import Optional

import structlog
from google.api_core import exceptions as gcp_exceptions
from google.cloud import pubsub_v1

from ..errors import ProducerError


class PubSubProducer:
    """
    Async-compatible Pub/Sub producer.

    Wraps the synchronous Google Cloud Pub/Sub client in an
    async-friendly interface suitable for FastAPI. The underlying
    client batches internally and is safe to share between requests.

    Attributes:
        project_id: GCP project identifier
        topic_id: Pub/Sub topic name
        _publisher: Underlying synchronous publisher client
        _topic_path: Full topic resource path
    """

    def __init__(
        self,
        project_id: str,
        topic_id: str,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
    ) -> None:
        """
        Initialize the Pub/Sub producer.

        Args:
            project_id: GCP project identifier
            topic_id: Pub/Sub topic name
            logger: Logger to report publish outcomes on
        """
        self.project_id = project_id
        self.topic_id = topic_id
        self.logger = logger or structlog.get_logger(__name__)
        self._publisher: Optional[pubsub_v1.PublisherClient] = None
        self._topic_path: Optional[str] = None

    def _get_publisher(self) -> pubsub_v1.PublisherClient:
        """
        Lazily initialize the publisher client.

        Message ordering is enabled so the job id can be used as
        ordering key.

        Returns:
            PublisherClient: Initialized Pub/Sub publisher
        """
        if self._publisher is None:
            self._publisher = pubsub_v1.PublisherClient(
                publisher_options=pubsub_v1.types.PublisherOptions(
                    enable_message_ordering=True,
                ),
            )
            self._topic_path = self._publisher.topic_path(
                self.project_id,
                self.topic_id,
            )
        return self._publisher

    async def start(self) -> None:
        self._get_publisher()
        self.logger.info(
            "producer_started",
            backend="pubsub",
            project_id=self.project_id,
            topic_id=self.topic_id,
        )

    async def send(self, key: str, value: bytes) -> None:
        """
        Publish a message to Pub/Sub asynchronously.

        The publish call runs in a thread pool to avoid blocking the
        event loop; the returned future is awaited without a thread.

        Args:
            key: Ordering key (the job id)
            value: Serialized envelope

        Raises:
            ProducerError: If publishing fails
        """
        publisher = self._get_publisher()

        try:
            loop = asyncio.get_running_loop()
            future = await loop.run_in_executor(
                None,
                lambda: publisher.publish(
                    self._topic_path,
                    data=value,
                    ordering_key=key,
                    job_id=key,
                ),
            )

            # Wait for publish confirmation
            message_id = await asyncio.wrap_future(future)

            self.logger.debug(
                "message_published",
                message_id=message_id,
                job_id=key,
                size=len(value),
            )

        except gcp_exceptions.NotFound as e:
            self.logger.error(
                "pubsub_topic_not_found",
                topic_path=self._topic_path,
                error=str(e),
            )
            raise ProducerError(
                f"Topic not found: {self._topic_path}"
            ) from e

        except gcp_exceptions.PermissionDenied as e:
            self.logger.error(
                "pubsub_permission_denied",
                topic_path=self._topic_path,
                error=str(e),
            )
            raise ProducerError(
                "Permission denied for Pub/Sub publish"
            ) from e

        except Exception as e:
            self.logger.error(
                "pubsub_publish_failed",
                topic_path=self._topic_path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ProducerError(
                f"Failed to publish message: {str(e)}"
            ) from e

    async def close(self) -> None:
        if self._publisher is None:
            return
        publisher, self._publisher = self._publisher, None
        # Flushes pending batches
        await asyncio.get_running_loop().run_in_executor(None, publisher.stop)
        self.logger.info("producer_stopped", backend="pubsub")
