# =============================================================================
# Ingest Gateway - Configuration
# =============================================================================
"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables with sensible defaults
for local development.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        server_addr: HTTP listen address in host:port form (":8080" binds all interfaces)
        broker_backend: Which broker client to construct ("kafka" or "pubsub")
        kafka_brokers: Comma-separated Kafka bootstrap endpoints
        kafka_topic: Destination Kafka topic
        kafka_client_id: Client id reported to the Kafka cluster
        gcp_project_id: Google Cloud project identifier (Pub/Sub backend)
        pubsub_topic: Pub/Sub topic name (Pub/Sub backend)
        max_payload_bytes: Largest accepted request body
        enqueue_timeout_seconds: Upper bound for a single broker send
        request_id_header: Header used to carry the correlation id
        environment: Current environment (development/staging/production)
        log_level: Logging verbosity level
        service_name: Name of this service for logging/tracing
    """

    # HTTP Server Configuration
    server_addr: str = ":8080"

    # Broker Configuration
    broker_backend: Literal["kafka", "pubsub"] = "kafka"
    kafka_brokers: str = "localhost:9092"
    kafka_topic: str = "ingress-topic"
    kafka_client_id: str = "ingest-gateway"
    gcp_project_id: str = "ingest-gateway-dev"
    pubsub_topic: str = "ingress-topic"

    # Ingestion Configuration
    max_payload_bytes: int = 1 << 20  # 1 MiB, the default Kafka message limit
    enqueue_timeout_seconds: float = 5.0
    request_id_header: str = "X-Request-ID"

    # Application Configuration
    environment: str = "development"
    log_level: str = "INFO"
    service_name: str = "ingest-gateway"

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("max_payload_bytes", "enqueue_timeout_seconds")
    @classmethod
    def validate_positive(cls, v):
        """Limits must be strictly positive."""
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @property
    def kafka_broker_list(self) -> List[str]:
        """Kafka endpoints as a list, blank entries dropped."""
        return [b.strip() for b in self.kafka_brokers.split(",") if b.strip()]

    @property
    def listen_host(self) -> str:
        host, _, _ = self.server_addr.rpartition(":")
        return host or "0.0.0.0"

    @property
    def listen_port(self) -> int:
        _, _, port = self.server_addr.rpartition(":")
        return int(port)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to avoid re-reading environment variables
    on every request.

    Returns:
        Settings: Application configuration instance
    """
    return Settings()
