"""
Shared pytest fixtures and configuration for all tests.
"""

import os

import pytest

from opensettle.kafka.config import KafkaConfig
from tests.utils.mocks import MockKafkaProducer


# ============= Environment Fixtures =============


@pytest.fixture(autouse=True)
def clean_kafka_env(monkeypatch):
    """Keep KAFKA_* variables from the host out of configuration tests."""
    for name in list(os.environ):
        if name.upper().startswith("KAFKA_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Mock environment variables for testing."""
    test_env = {
        "KAFKA_BOOTSTRAP_SERVERS": "broker-1:9092,broker-2:9092",
        "KAFKA_CLIENT_ID": "settlement-worker",
        "KAFKA_ACKS": "leader",
        "KAFKA_ENABLE_IDEMPOTENCE": "false",
        "KAFKA_MESSAGE_TIMEOUT_MS": "5000",
        "KAFKA_COMPRESSION": "zstd",
        "KAFKA_LINGER_MS": "5",
    }

    for key, value in test_env.items():
        monkeypatch.setenv(key, value)

    return test_env


# ============= Kafka Fixtures =============


@pytest.fixture
def kafka_config():
    """Test delivery configuration."""
    return KafkaConfig(
        bootstrap_servers="localhost:9092",
        client_id="opensettle-test",
        message_timeout_ms=1000,
    )


@pytest.fixture
def mock_producer():
    """Transport that acknowledges every message."""
    return MockKafkaProducer()


@pytest.fixture
def valid_headers():
    """Headers satisfying the metadata contract."""
    return {
        "traceparent": "00-0af7651916cd43dd8448eb211c80319c-b7ad6b7169203331-01",
        "correlation-id": "c1",
        "idempotency-key": "k1",
    }


# ============= Pytest Configuration =============


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test (no external dependencies)")
    config.addinivalue_line("markers", "integration: mark test as integration test (requires services)")
