"""
Kafka publisher enforcing the header contract and confirming every send.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from confluent_kafka import KafkaError, KafkaException, Message

from opensettle.common.exceptions import (
    DeliveryError,
    DeliveryTimeoutError,
    InvalidArgumentError,
    OperationCancelledError,
)

from .config import KafkaConfig
from .headers import is_utf8_encodable, normalize_headers
from .models import DeliveryOutcome, OutboundMessage, encode_payload
from .producer import KafkaProducer

logger = logging.getLogger(__name__)


class SendState(str, Enum):
    """Lifecycle of a single send."""

    VALIDATING = "validating"
    HEADERS_NORMALIZED = "headers-normalized"
    SUBMITTED = "submitted"
    ACKNOWLEDGED = "acknowledged"
    FAILED = "failed"
    CANCELLED = "cancelled"


def _require_text(field: str, value: Any) -> None:
    if not isinstance(value, str) or not value or not is_utf8_encodable(value):
        raise InvalidArgumentError(field)


def _delivery_error(exc: KafkaException) -> DeliveryError:
    """Translate a transport failure into a DeliveryError, keeping the broker's classification."""
    err = exc.args[0] if exc.args else None
    if not isinstance(err, KafkaError):
        return DeliveryError("UNKNOWN", str(exc))
    error_cls = DeliveryTimeoutError if err.code() == KafkaError._MSG_TIMED_OUT else DeliveryError
    return error_cls(err.name(), err.str(), retriable=err.retriable(), fatal=err.fatal())


class KafkaPublisher:
    """
    Publishes payment events and reports the confirmed (topic, partition, offset).

    Holds no per-call state, so a single instance can serve many concurrent
    ``send`` calls. The publisher owns its producer and releases it on ``close``.
    """

    def __init__(self, config: KafkaConfig, producer: Optional[KafkaProducer] = None):
        """
        Initialize the Kafka publisher.

        Args:
            config: Delivery configuration
            producer: Broker transport, a new ``KafkaProducer`` if None
        """
        self.config = config
        self.producer = producer or KafkaProducer(config)
        if not self.producer.connected:
            self.producer.connect()
        self._delivered = 0
        self._failed = 0
        self._cancelled = 0
        self._closed = False
        logger.info("KafkaPublisher initialized")

    async def send(
        self,
        topic: str,
        key: str,
        payload: bytes,
        headers: Mapping[str, str],
        cancellation: Optional[asyncio.Event] = None,
    ) -> DeliveryOutcome:
        """
        Publish one message and wait for the broker to confirm it.

        Args:
            topic: Destination topic
            key: Partition key, messages sharing a key keep their order
            payload: UTF-8 encoded event body
            headers: Must include traceparent, correlation-id and idempotency-key
            cancellation: Optional signal to stop waiting for the acknowledgment

        Returns:
            Position the broker persisted the message at

        Raises:
            InvalidArgumentError: Empty topic, key or payload, or missing headers
            MissingHeaderError: A required header is absent or blank
            DeliveryError: The broker refused or could not confirm the message
            DeliveryTimeoutError: No acknowledgment within the message timeout
            OperationCancelledError: ``cancellation`` fired before acknowledgment
        """
        if self._closed:
            raise RuntimeError("Publisher is closed")

        self._trace(topic, key, SendState.VALIDATING)
        _require_text("topic", topic)
        _require_text("key", key)
        if not isinstance(payload, (bytes, bytearray, memoryview)) or len(payload) == 0:
            raise InvalidArgumentError("payload")
        if headers is None or not isinstance(headers, Mapping):
            raise InvalidArgumentError("headers")

        normalized = normalize_headers(headers, self.config.schema_version)
        self._trace(topic, key, SendState.HEADERS_NORMALIZED)

        message = OutboundMessage(topic=topic, key=key, payload=bytes(payload), headers=normalized)

        if cancellation is not None and cancellation.is_set():
            self._cancelled += 1
            self._trace(topic, key, SendState.CANCELLED)
            raise OperationCancelledError(f"Send to '{topic}' cancelled before submission")

        try:
            future = self.producer.submit(message)
        except BufferError as e:
            self._record_failure(topic, key)
            raise DeliveryError("_QUEUE_FULL", str(e), retriable=True) from e
        except KafkaException as e:
            self._record_failure(topic, key)
            raise _delivery_error(e) from e
        self._trace(topic, key, SendState.SUBMITTED)

        try:
            ack = await self._await_delivery(future, cancellation)
        except KafkaException as e:
            error = _delivery_error(e)
            logger.error(f"Message delivery to '{topic}' failed: {error}")
            self._record_failure(topic, key)
            raise error from e
        except DeliveryError:
            self._record_failure(topic, key)
            raise
        except OperationCancelledError:
            self._cancelled += 1
            self._trace(topic, key, SendState.CANCELLED)
            raise

        return self._to_outcome(ack, key)

    async def send_event(
        self,
        topic: str,
        key: str,
        event: Any,
        headers: Mapping[str, str],
        cancellation: Optional[asyncio.Event] = None,
    ) -> DeliveryOutcome:
        """
        Serialize a structured event to JSON and publish it with ``send``.

        Args:
            event: Dict, list or pydantic model describing the event
        """
        try:
            payload = encode_payload(event)
        except TypeError as e:
            raise InvalidArgumentError("payload", f"Event is not JSON serializable: {e}") from e
        return await self.send(topic, key, payload, headers, cancellation)

    async def _await_delivery(
        self,
        future: "asyncio.Future[Message]",
        cancellation: Optional[asyncio.Event],
    ) -> Message:
        waiters = {future}
        cancel_waiter = None
        if cancellation is not None:
            cancel_waiter = asyncio.ensure_future(cancellation.wait())
            waiters.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(
                waiters,
                timeout=self.config.message_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            future.cancel()
            raise
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()

        if future in done:
            return future.result()

        # Abandon the in-flight send, the broker may still persist it
        future.cancel()
        if cancel_waiter is not None and cancel_waiter in done:
            raise OperationCancelledError("Send cancelled before broker acknowledgment")
        raise DeliveryTimeoutError(
            "_MSG_TIMED_OUT",
            f"No acknowledgment within {self.config.message_timeout_ms} ms",
            retriable=True,
        )

    def _to_outcome(self, ack: Message, key: str) -> DeliveryOutcome:
        topic, partition, offset = ack.topic(), ack.partition(), ack.offset()
        if partition is None or offset is None or partition < 0 or offset < 0:
            # acks=none never reports a stored offset
            self._record_failure(topic, key)
            raise DeliveryError(
                "UNCONFIRMED_POSITION",
                f"Broker reported no confirmed position (partition={partition}, offset={offset})",
            )

        outcome = DeliveryOutcome(topic=topic, partition=partition, offset=offset)
        self._delivered += 1
        self._trace(topic, key, SendState.ACKNOWLEDGED)
        logger.info(f"Produced to {outcome.topic} p{outcome.partition} @ {outcome.offset}")
        return outcome

    def _record_failure(self, topic: str, key: str) -> None:
        self._failed += 1
        self._trace(topic, key, SendState.FAILED)

    @staticmethod
    def _trace(topic: Any, key: Any, state: SendState) -> None:
        logger.debug(f"Send {topic}/{key}: {state.value}")

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get publisher metrics.

        Returns:
            Dictionary with delivered, failed and cancelled counts
        """
        completed = self._delivered + self._failed
        return {
            "messages_delivered": self._delivered,
            "messages_failed": self._failed,
            "messages_cancelled": self._cancelled,
            "success_rate": self._delivered / completed if completed > 0 else 0,
        }

    async def close(self) -> None:
        """Flush pending messages and release the producer."""
        if self._closed:
            return
        self._closed = True
        logger.info("Closing KafkaPublisher")
        await asyncio.to_thread(self.producer.close)
        logger.info(
            f"KafkaPublisher closed. Delivered: {self._delivered}, "
            f"Failed: {self._failed}, Cancelled: {self._cancelled}"
        )

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
