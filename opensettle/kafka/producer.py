"""
Asynchronous Kafka transport built on the confluent-kafka producer.
"""

import asyncio
import logging
import threading
from typing import Optional

from confluent_kafka import KafkaException, Message, Producer

from .config import KafkaConfig
from .models import OutboundMessage

logger = logging.getLogger(__name__)


class KafkaProducer:
    """
    Broker transport owning one confluent-kafka producer.

    Batching, retries, idempotent duplicate suppression and partition assignment
    all happen inside librdkafka. A background thread polls the producer so that
    delivery reports are served while callers await them on the event loop.
    """

    def __init__(self, config: KafkaConfig, poll_interval: float = 0.1):
        """
        Initialize Kafka producer.

        Args:
            config: Delivery configuration
            poll_interval: Seconds each poll call may block waiting for events
        """
        self.config = config
        self.poll_interval = poll_interval
        self._producer: Optional[Producer] = None
        self._poll_thread: Optional[threading.Thread] = None
        self._stop = threading.Event()

    @property
    def connected(self) -> bool:
        return self._producer is not None

    def connect(self) -> None:
        """Create the underlying producer and start the poll thread."""
        if self._producer is not None:
            logger.warning("Producer already connected")
            return

        try:
            self._producer = Producer(self.config.get_producer_config())
        except KafkaException as e:
            logger.error(f"Failed to create Kafka producer: {e}")
            raise

        self._stop.clear()
        self._poll_thread = threading.Thread(
            target=self._poll_loop, name="kafka-producer-poll", daemon=True
        )
        self._poll_thread.start()
        logger.info(
            f"Connected to Kafka brokers: {self.config.bootstrap_servers} "
            f"(client.id={self.config.client_id})"
        )

    def _poll_loop(self) -> None:
        producer = self._producer
        while not self._stop.is_set():
            producer.poll(self.poll_interval)

    def submit(self, message: OutboundMessage) -> "asyncio.Future[Message]":
        """
        Hand a message to the producer for asynchronous delivery.

        Must be called from a running event loop. The returned future resolves
        with the acknowledged ``Message`` or fails with ``KafkaException``.

        Raises:
            RuntimeError: The producer is not connected
            BufferError: The local producer queue is full
            KafkaException: The producer rejected the message outright
        """
        if self._producer is None:
            raise RuntimeError("Producer not connected")

        loop = asyncio.get_running_loop()
        future: "asyncio.Future[Message]" = loop.create_future()

        def delivery_callback(err, msg):
            """Runs on the poll thread."""
            try:
                if err is not None:
                    loop.call_soon_threadsafe(_set_exception, future, KafkaException(err))
                else:
                    loop.call_soon_threadsafe(_set_result, future, msg)
            except RuntimeError:
                # Event loop already closed, nobody is waiting for this report
                logger.warning(f"Dropped delivery report for topic '{message.topic}': event loop closed")

        self._producer.produce(
            topic=message.topic,
            key=message.key.encode("utf-8"),
            value=message.payload,
            headers=message.kafka_headers(),
            on_delivery=delivery_callback,
        )
        return future

    def flush(self, timeout: Optional[float] = None) -> int:
        """
        Wait for outstanding messages to be delivered.

        Returns:
            Number of messages still queued when the timeout elapsed
        """
        if self._producer is None:
            return 0
        return self._producer.flush(self.config.flush_timeout if timeout is None else timeout)

    def close(self) -> None:
        """Flush remaining messages, stop polling and release the producer."""
        if self._producer is None:
            return

        self._stop.set()
        if self._poll_thread is not None:
            # Stop is set, so the thread exits after its current poll
            self._poll_thread.join()
            self._poll_thread = None

        # flush() serves the remaining delivery callbacks itself
        remaining = self.flush()
        if remaining > 0:
            logger.warning(f"Closed producer with {remaining} messages still in queue")
        self._producer = None
        logger.info("Kafka producer closed")

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


def _set_result(future: asyncio.Future, msg: Message) -> None:
    if not future.done():
        future.set_result(msg)


def _set_exception(future: asyncio.Future, exc: Exception) -> None:
    if not future.done():
        future.set_exception(exc)
