"""
Unit tests for topic provisioning.
"""

from unittest.mock import MagicMock, patch

import pytest
from confluent_kafka import KafkaError, KafkaException

from opensettle.common.exceptions import TopicProvisioningError
from opensettle.kafka.config import KafkaConfig
from opensettle.kafka.topics import (
    PAYMENTS_CREATED,
    TopicManager,
    TopicSpec,
    dlq_topic_name,
    payments_created_topics,
)


def _mock_admin(existing=(), create_error=None):
    admin = MagicMock()
    admin.list_topics.return_value = MagicMock(topics={name: MagicMock() for name in existing})

    def create_topics(new_topics, operation_timeout):
        futures = {}
        for new_topic in new_topics:
            future = MagicMock()
            if create_error is not None:
                future.result.side_effect = create_error
            else:
                future.result.return_value = None
            futures[new_topic.topic] = future
        return futures

    admin.create_topics.side_effect = create_topics
    return admin


@pytest.mark.unit
class TestTopicSpecs:
    """Test topic naming and provisioning parameters."""

    def test_dlq_topic_name(self):
        """Test dead-letter topics pair with their event topic."""
        assert dlq_topic_name("payments.created") == "payments.created.dlq"

    def test_payments_created_topics(self):
        """Test the payment stream and DLQ parameters."""
        primary, dlq = payments_created_topics()

        assert (primary.name, primary.partitions, primary.retention_hours) == (PAYMENTS_CREATED, 3, 168)
        assert (dlq.name, dlq.partitions, dlq.retention_hours) == ("payments.created.dlq", 3, 720)
        assert primary.retention_ms == 604800000

    def test_to_new_topic(self):
        """Test conversion to an admin NewTopic."""
        new_topic = TopicSpec(name="payments.created", partitions=3, retention_hours=1).to_new_topic(2)

        assert new_topic.topic == "payments.created"
        assert new_topic.num_partitions == 3
        assert new_topic.replication_factor == 2
        assert new_topic.config == {"retention.ms": "3600000"}

    def test_invalid_spec(self):
        """Test partition count must be positive."""
        with pytest.raises(ValueError):
            TopicSpec(name="payments.created", partitions=0, retention_hours=1)


@pytest.mark.unit
class TestTopicManager:
    """Test TopicManager class."""

    @patch("opensettle.kafka.topics.AdminClient")
    def test_ensure_topics_creates_missing(self, mock_admin_class, kafka_config):
        """Test missing topics are created with their spec."""
        admin = _mock_admin(existing=["payments.created"])
        mock_admin_class.return_value = admin

        manager = TopicManager(kafka_config)
        manager.ensure_topics(payments_created_topics())

        assert admin.create_topics.call_count == 1
        created = admin.create_topics.call_args.args[0]
        assert [t.topic for t in created] == ["payments.created.dlq"]
        assert manager.topic_exists("payments.created.dlq") is True

    @patch("opensettle.kafka.topics.AdminClient")
    def test_existing_topics_cached(self, mock_admin_class, kafka_config):
        """Test known topics skip further metadata requests."""
        admin = _mock_admin(existing=["payments.created"])
        mock_admin_class.return_value = admin

        manager = TopicManager(kafka_config)
        assert manager.topic_exists("payments.created") is True
        assert manager.topic_exists("payments.created") is True

        assert admin.list_topics.call_count == 1

    @patch("opensettle.kafka.topics.AdminClient")
    def test_already_exists_is_success(self, mock_admin_class, kafka_config):
        """Test a create race with another provisioner is tolerated."""
        mock_admin_class.return_value = _mock_admin(
            create_error=KafkaException(KafkaError(KafkaError.TOPIC_ALREADY_EXISTS))
        )

        manager = TopicManager(kafka_config)
        manager.create_topic(TopicSpec(name="payments.created", partitions=3, retention_hours=168))

        assert manager.topic_exists("payments.created") is True

    @patch("opensettle.kafka.topics.AdminClient")
    def test_create_failure(self, mock_admin_class, kafka_config):
        """Test a refused creation raises TopicProvisioningError."""
        mock_admin_class.return_value = _mock_admin(
            create_error=KafkaException(KafkaError(KafkaError.POLICY_VIOLATION, "denied"))
        )

        manager = TopicManager(kafka_config)
        with pytest.raises(TopicProvisioningError) as exc_info:
            manager.create_topic(TopicSpec(name="payments.created", partitions=3, retention_hours=168))

        assert "payments.created" in str(exc_info.value)

    @patch("opensettle.kafka.topics.AdminClient")
    def test_auto_create_disabled(self, mock_admin_class):
        """Test missing topics are an error when auto creation is off."""
        admin = _mock_admin()
        mock_admin_class.return_value = admin

        manager = TopicManager(KafkaConfig(auto_create_topics=False))
        with pytest.raises(TopicProvisioningError):
            manager.ensure_topics(payments_created_topics())

        admin.create_topics.assert_not_called()

    @patch("opensettle.kafka.topics.AdminClient")
    def test_list_topics_failure(self, mock_admin_class, kafka_config):
        """Test broker metadata failures surface as TopicProvisioningError."""
        admin = MagicMock()
        admin.list_topics.side_effect = KafkaException(KafkaError(KafkaError._TRANSPORT))
        mock_admin_class.return_value = admin

        with pytest.raises(TopicProvisioningError):
            TopicManager(kafka_config).topic_exists("payments.created")

    @patch("opensettle.kafka.topics.AdminClient")
    def test_close(self, mock_admin_class, kafka_config):
        """Test close drops the admin client."""
        mock_admin_class.return_value = _mock_admin(existing=["payments.created"])

        manager = TopicManager(kafka_config)
        manager.topic_exists("payments.created")
        manager.close()

        assert manager._admin_client is None
