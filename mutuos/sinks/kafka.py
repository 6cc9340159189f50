"""Kafka sink publishing installment events keyed by contract."""

import json
import logging
import time
from dataclasses import dataclass, field, is_dataclass
from typing import Any

from confluent_kafka import Producer

from mutuos.config import KafkaConfig
from mutuos.models.base import Event
from mutuos.sinks.serialization import to_dict

logger = logging.getLogger(__name__)


@dataclass
class DeliveryStats:
    """Counters fed by producer delivery reports."""

    sent: int = 0
    delivered: int = 0
    failed: int = 0
    started_at: float = field(default_factory=time.time)
    closed_at: float | None = None

    @property
    def pending(self) -> int:
        """Messages produced but not yet acknowledged either way."""
        return self.sent - self.delivered - self.failed

    @property
    def success_rate(self) -> float:
        acknowledged = self.delivered + self.failed
        if not acknowledged:
            return 0.0
        return self.delivered / acknowledged

    @property
    def throughput(self) -> float:
        """Messages per second between creation and close."""
        if self.closed_at is None or self.closed_at <= self.started_at:
            return 0.0
        return self.sent / (self.closed_at - self.started_at)


def partition_key(record: Any) -> str | None:
    """Contract id of ``record``, used so one contract stays on one partition.

    Events carry it as ``subject``; installments and KPIs as ``contract_id``.
    """
    if isinstance(record, Event):
        return record.subject
    if isinstance(record, dict):
        value = record.get("contract_id") or record.get("subject")
    elif is_dataclass(record):
        value = getattr(record, "contract_id", None)
    else:
        value = None
    return str(value) if value else None


class KafkaSink:
    """Publish engine records to Kafka as UTF-8 JSON.

    Events get an ``event_type`` header so consumers can filter without
    decoding the payload.
    """

    def __init__(self, config: KafkaConfig | str, topic: str | None = None) -> None:
        """Create the producer.

        Parameters
        ----------
        config : KafkaConfig | str
            Producer settings, or just the bootstrap servers.
        topic : str | None
            Topic used by ``publish``; defaults to ``config.topic``.
        """
        if isinstance(config, str):
            config = KafkaConfig(bootstrap_servers=config)

        self.config = config
        self.topic = topic or config.topic
        self.producer = Producer(config.to_dict())
        self.stats = DeliveryStats()

    def _on_delivery(self, err: Any, msg: Any) -> None:
        if err is not None:
            self.stats.failed += 1
            logger.error("Kafka delivery failed: %s", err)
            return
        self.stats.delivered += 1
        logger.debug("Kafka ack %s[%d]@%d", msg.topic(), msg.partition(), msg.offset())

    def send(self, topic: str, record: Any, key: str | None = None) -> None:
        """Produce one record; the key defaults to the record's contract id."""
        key = key or partition_key(record)
        headers = [("event_type", record.event_type.encode("utf-8"))] if isinstance(record, Event) else None

        self.producer.produce(
            topic=topic,
            key=None if key is None else key.encode("utf-8"),
            value=json.dumps(to_dict(record), ensure_ascii=False).encode("utf-8"),
            headers=headers,
            on_delivery=self._on_delivery,
        )
        self.stats.sent += 1
        # Serve delivery callbacks without blocking
        self.producer.poll(0)

    def publish(self, event: Event) -> None:
        """Send a lifecycle event to the sink's default topic."""
        self.send(self.topic, event, key=event.subject)

    def write_batch(self, topic: str, records: list[Any]) -> None:
        """Produce every record, then wait for acknowledgements."""
        for record in records:
            self.send(topic, record)
        self.flush()
        logger.info(
            "Published %d records to %s (%d delivered, %d failed so far)",
            len(records),
            topic,
            self.stats.delivered,
            self.stats.failed,
        )

    def flush(self, timeout: float = 30.0) -> int:
        """Wait for outstanding deliveries; returns how many are still queued."""
        remaining = self.producer.flush(timeout)
        if remaining:
            logger.warning("%d Kafka messages still queued after %.1fs", remaining, timeout)
        return remaining

    def close(self) -> None:
        self.flush()
        self.stats.closed_at = time.time()
        logger.info(
            "Kafka sink closed: %d sent, %d delivered, %d failed",
            self.stats.sent,
            self.stats.delivered,
            self.stats.failed,
        )
