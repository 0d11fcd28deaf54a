"""
Kafka module for publishing payment events.
"""

from .config import DEFAULT_SCHEMA_VERSION, AckLevel, CompressionType, KafkaConfig
from .headers import REQUIRED_HEADERS, normalize_headers
from .models import DeliveryOutcome, OutboundMessage, encode_payload
from .producer import KafkaProducer
from .publisher import KafkaPublisher, SendState
from .topics import PAYMENTS_CREATED, TopicManager, TopicSpec, dlq_topic_name, payments_created_topics

__all__ = [
    "DEFAULT_SCHEMA_VERSION",
    "AckLevel",
    "CompressionType",
    "KafkaConfig",
    "REQUIRED_HEADERS",
    "normalize_headers",
    "DeliveryOutcome",
    "OutboundMessage",
    "encode_payload",
    "KafkaProducer",
    "KafkaPublisher",
    "SendState",
    "PAYMENTS_CREATED",
    "TopicManager",
    "TopicSpec",
    "dlq_topic_name",
    "payments_created_topics",
]
