#!/usr/bin/env python3
"""
Publish a single payments.created event to a local broker.

Ensures the payment topics exist, sends one event with freshly generated
trace metadata and prints the confirmed position.

Usage:
    python scripts/publish_payment.py [--order-id ID] [--amount N] [--currency CCY]
"""

import argparse
import asyncio
import logging
import sys
import uuid
from decimal import Decimal

from rich.console import Console
from rich.table import Table

from opensettle.common.exceptions import PublishError
from opensettle.kafka import (
    PAYMENTS_CREATED,
    KafkaConfig,
    KafkaPublisher,
    TopicManager,
    payments_created_topics,
)

logger = logging.getLogger(__name__)

console = Console()


def build_headers(idempotency_key: str) -> dict:
    """Headers with a new W3C traceparent and correlation id."""
    trace_id = uuid.uuid4().hex
    span_id = uuid.uuid4().hex[:16]
    return {
        "traceparent": f"00-{trace_id}-{span_id}-01",
        "correlation-id": str(uuid.uuid4()),
        "idempotency-key": idempotency_key,
    }


async def publish(args: argparse.Namespace) -> int:
    config = KafkaConfig(bootstrap_servers=args.bootstrap_servers) if args.bootstrap_servers else KafkaConfig()

    topic_manager = TopicManager(config)
    try:
        topic_manager.ensure_topics(payments_created_topics())
    finally:
        topic_manager.close()

    event = {
        "order_id": args.order_id,
        "amount": Decimal(args.amount),
        "currency": args.currency,
    }
    headers = build_headers(args.idempotency_key or f"{args.order_id}-created")

    async with KafkaPublisher(config) as publisher:
        try:
            outcome = await publisher.send_event(PAYMENTS_CREATED, args.order_id, event, headers)
        except PublishError as e:
            console.print(f"[red]Publish failed: {e}[/red]")
            return 1

    table = Table(title="Delivery outcome")
    table.add_column("Topic")
    table.add_column("Partition", justify="right")
    table.add_column("Offset", justify="right")
    table.add_row(outcome.topic, str(outcome.partition), str(outcome.offset))
    console.print(table)
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Publish a payments.created event")
    parser.add_argument("--bootstrap-servers", help="Override KAFKA_BOOTSTRAP_SERVERS")
    parser.add_argument("--order-id", default="order-123", help="Order id, used as partition key")
    parser.add_argument("--amount", default="100", help="Payment amount")
    parser.add_argument("--currency", default="USD", help="ISO currency code")
    parser.add_argument("--idempotency-key", help="Stable key for safe retries")
    parser.add_argument("--verbose", action="store_true", help="Log send state transitions")
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger("opensettle").setLevel(logging.DEBUG)

    return asyncio.run(publish(args))


if __name__ == "__main__":
    sys.exit(main())
