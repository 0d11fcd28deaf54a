import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# Control external library verbosity
logging.getLogger("confluent_kafka").setLevel(logging.WARNING)

from opensettle.kafka import KafkaConfig, KafkaPublisher, DeliveryOutcome  # noqa: E402

__all__ = [
    "KafkaConfig",
    "KafkaPublisher",
    "DeliveryOutcome",
]
