"""
Data models for Kafka publishing.
"""

from decimal import Decimal
from typing import Any, Dict, List, Tuple

import orjson
from pydantic import BaseModel, Field


class OutboundMessage(BaseModel):
    """A validated message ready to hand to the broker transport."""

    topic: str = Field(..., min_length=1, description="Kafka topic name")
    key: str = Field(..., min_length=1, description="Partition key, orders messages per key")
    payload: bytes = Field(..., min_length=1, description="UTF-8 encoded structured data")
    headers: Dict[str, str] = Field(
        default_factory=dict,
        description="Normalized message headers with lower-cased names"
    )

    model_config = {"frozen": True}

    def kafka_headers(self) -> List[Tuple[str, bytes]]:
        """Headers as the (name, bytes) pairs the Kafka client expects."""
        return [(name, value.encode("utf-8")) for name, value in self.headers.items()]


class DeliveryOutcome(BaseModel):
    """Confirmed position of a message persisted by the broker."""

    topic: str = Field(..., description="Topic the message was written to")
    partition: int = Field(..., ge=0, description="Partition index")
    offset: int = Field(..., ge=0, description="Offset within the partition")

    model_config = {"frozen": True}


def _default(obj: Any) -> Any:
    # Keep monetary amounts exact
    if isinstance(obj, Decimal):
        return str(obj)
    raise TypeError(f"Type is not JSON serializable: {type(obj).__name__}")


def encode_payload(value: Any) -> bytes:
    """
    Serialize an event body to UTF-8 JSON bytes.

    Args:
        value: Bytes (passed through), a pydantic model, or JSON-compatible data

    Returns:
        Encoded payload
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    return orjson.dumps(value, default=_default)
