"""
Kafka delivery configuration settings.
"""

from enum import Enum
from typing import Any, Dict, List

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from opensettle.common.exceptions import ConfigurationError

DEFAULT_SCHEMA_VERSION = "v1"


class AckLevel(str, Enum):
    """How many replicas must confirm a write before it counts as delivered."""

    NONE = "none"
    LEADER = "leader"
    ALL = "all"

    @property
    def librdkafka_value(self) -> str:
        return {"none": "0", "leader": "1", "all": "all"}[self.value]


class CompressionType(str, Enum):
    """Payload compression codecs supported by the producer."""

    NONE = "none"
    GZIP = "gzip"
    SNAPPY = "snappy"
    LZ4 = "lz4"
    ZSTD = "zstd"


class KafkaConfig(BaseSettings):
    """
    Immutable delivery configuration shared by every publisher.

    Defaults target a local Redpanda broker running in Docker. Any field can be
    overridden through ``KAFKA_*`` environment variables or a ``.env`` file.
    """

    # Connection settings
    bootstrap_servers: str = Field(
        default="localhost:9092",
        description="Comma-separated Kafka broker addresses"
    )
    client_id: str = Field(
        default="opensettle-dev",
        description="Identifies the client in broker logs/metrics"
    )

    # Durability
    acks: AckLevel = Field(
        default=AckLevel.ALL,
        description="Acknowledgment level: none, leader or all"
    )
    enable_idempotence: bool = Field(
        default=True,
        description="Suppress duplicate persistence on transport-level retries"
    )
    message_timeout_ms: int = Field(
        default=30000,
        description="Fail a send if not acknowledged within this timeout"
    )

    # Batching
    compression: CompressionType = Field(
        default=CompressionType.NONE,
        description="Payload compression algorithm"
    )
    linger_ms: int = Field(
        default=0,
        description="Batch linger before sending, 0 = send immediately"
    )

    # Message metadata
    schema_version: str = Field(
        default=DEFAULT_SCHEMA_VERSION,
        description="Default schema version stamped into message headers"
    )

    # Shutdown
    flush_timeout: float = Field(
        default=10.0,
        description="Timeout for producer flush on close in seconds"
    )

    # Topic management
    auto_create_topics: bool = Field(
        default=True,
        description="Create topics on start if they don't exist"
    )
    replication_factor: int = Field(
        default=1,
        description="Replication factor for provisioned topics"
    )

    model_config = {
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "KAFKA_",
        "extra": "ignore",
        "frozen": True,
    }

    @model_validator(mode="after")
    def validate_delivery_settings(self) -> "KafkaConfig":
        if not self.bootstrap_servers.strip():
            raise ConfigurationError("bootstrap_servers must not be empty")
        if any(not address.strip() for address in self.bootstrap_servers.split(",")):
            raise ConfigurationError(f"Empty broker address in '{self.bootstrap_servers}'")
        if not self.client_id.strip():
            raise ConfigurationError("client_id must not be empty")
        if self.enable_idempotence and self.acks is not AckLevel.ALL:
            raise ConfigurationError(
                f"Idempotent producers require acks=all, got acks={self.acks.value}"
            )
        if self.message_timeout_ms <= 0:
            raise ConfigurationError("message_timeout_ms must be positive")
        if self.linger_ms < 0:
            raise ConfigurationError("linger_ms must not be negative")
        if not self.schema_version.strip():
            raise ConfigurationError("schema_version must not be empty")
        return self

    @property
    def broker_addresses(self) -> List[str]:
        """Broker addresses as a list."""
        return [address.strip() for address in self.bootstrap_servers.split(",")]

    @property
    def message_timeout(self) -> float:
        """Message timeout in seconds."""
        return self.message_timeout_ms / 1000

    def get_producer_config(self) -> Dict[str, Any]:
        """
        Render the librdkafka producer configuration.

        Returns:
            Producer configuration dict for ``confluent_kafka.Producer``
        """
        return {
            "bootstrap.servers": ",".join(self.broker_addresses),
            "client.id": self.client_id,
            "enable.idempotence": self.enable_idempotence,
            "acks": self.acks.librdkafka_value,
            "message.timeout.ms": self.message_timeout_ms,
            "compression.type": self.compression.value,
            "linger.ms": self.linger_ms,
            "socket.keepalive.enable": True,
        }
