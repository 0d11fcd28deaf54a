"""
Topic provisioning for payment event streams.
"""

import logging
from typing import Iterable, List, Optional, Set

from confluent_kafka import KafkaError, KafkaException
from confluent_kafka.admin import AdminClient, NewTopic
from pydantic import BaseModel, Field

from opensettle.common.exceptions import TopicProvisioningError

from .config import KafkaConfig

logger = logging.getLogger(__name__)

PAYMENTS_CREATED = "payments.created"
DLQ_SUFFIX = ".dlq"


def dlq_topic_name(event_name: str) -> str:
    """Dead-letter topic paired with an event topic."""
    return f"{event_name}{DLQ_SUFFIX}"


class TopicSpec(BaseModel):
    """What the provisioner needs to know about a topic."""

    name: str = Field(..., min_length=1, description="Topic name")
    partitions: int = Field(..., gt=0, description="Partition count")
    retention_hours: int = Field(..., gt=0, description="Retention in hours")

    model_config = {"frozen": True}

    @property
    def retention_ms(self) -> int:
        return self.retention_hours * 3600 * 1000

    def to_new_topic(self, replication_factor: int) -> NewTopic:
        return NewTopic(
            topic=self.name,
            num_partitions=self.partitions,
            replication_factor=replication_factor,
            config={"retention.ms": str(self.retention_ms)},
        )


def payments_created_topics() -> List[TopicSpec]:
    """The payments.created stream and its dead-letter topic."""
    return [
        TopicSpec(name=PAYMENTS_CREATED, partitions=3, retention_hours=168),  # 7 days
        TopicSpec(name=dlq_topic_name(PAYMENTS_CREATED), partitions=3, retention_hours=720),  # 30 days
    ]


class TopicManager:
    """Creates topics ahead of publishing. Not used by the publish path itself."""

    def __init__(self, config: KafkaConfig):
        self.config = config
        self._admin_client: Optional[AdminClient] = None
        self._topic_cache: Set[str] = set()

    def _get_admin_client(self) -> AdminClient:
        if self._admin_client is None:
            self._admin_client = AdminClient({
                "bootstrap.servers": ",".join(self.config.broker_addresses),
                "client.id": self.config.client_id,
                "socket.timeout.ms": 10000,
                "request.timeout.ms": 10000,
            })
            logger.info(f"Created Kafka AdminClient for {self.config.bootstrap_servers}")
        return self._admin_client

    def topic_exists(self, topic_name: str) -> bool:
        """
        Check if a topic exists.

        Raises:
            TopicProvisioningError: Broker metadata could not be fetched
        """
        if topic_name in self._topic_cache:
            return True

        try:
            metadata = self._get_admin_client().list_topics(timeout=5)
        except KafkaException as e:
            raise TopicProvisioningError(f"Could not list topics: {e}") from e

        if topic_name in metadata.topics:
            self._topic_cache.add(topic_name)
            return True
        return False

    def create_topic(self, spec: TopicSpec) -> None:
        """
        Create a topic unless it already exists.

        Raises:
            TopicProvisioningError: The broker refused to create the topic
        """
        if self.topic_exists(spec.name):
            logger.debug(f"Topic '{spec.name}' already exists")
            return

        futures = self._get_admin_client().create_topics(
            [spec.to_new_topic(self.config.replication_factor)], operation_timeout=30
        )
        for topic, future in futures.items():
            try:
                future.result()
            except KafkaException as e:
                err = e.args[0] if e.args else None
                if isinstance(err, KafkaError) and err.code() == KafkaError.TOPIC_ALREADY_EXISTS:
                    logger.debug(f"Topic '{topic}' already exists")
                else:
                    raise TopicProvisioningError(f"Failed to create topic '{topic}': {e}") from e
            else:
                logger.info(
                    f"Created topic '{topic}' with {spec.partitions} partition(s), "
                    f"retention {spec.retention_hours}h"
                )
            self._topic_cache.add(topic)

    def ensure_topics(self, specs: Iterable[TopicSpec]) -> None:
        """
        Ensure every topic exists, creating missing ones if allowed.

        Raises:
            TopicProvisioningError: A topic is missing and could not be created
        """
        for spec in specs:
            if self.config.auto_create_topics:
                self.create_topic(spec)
            elif not self.topic_exists(spec.name):
                raise TopicProvisioningError(
                    f"Topic '{spec.name}' does not exist and auto_create_topics is disabled"
                )

    def close(self) -> None:
        """Drop the admin client."""
        if self._admin_client is not None:
            # AdminClient has no close method
            self._admin_client = None
            logger.info("TopicManager closed")
