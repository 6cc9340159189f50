"""Installment lifecycle events."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

from mutuos.models.base import Event
from mutuos.models.enums import EventType
from mutuos.models.installment import Installment
from mutuos.sinks.serialization import to_dict

logger = logging.getLogger(__name__)

EVENT_SOURCE = "mutuos.ledger"

Subscriber = Callable[[Event], None]


def build_event(event_type: EventType, installment: Installment, source: str = EVENT_SOURCE) -> Event:
    """Wrap an installment snapshot in the standard event envelope."""
    return Event(
        event_id=str(uuid.uuid4()),
        event_type=event_type.value,
        event_time=datetime.now(timezone.utc),
        source=source,
        subject=installment.contract_id,
        data=to_dict(installment),
        metadata={"installment_number": installment.number},
    )


class SinkSubscriber:
    """Forward ledger events to a sink, keyed by contract id."""

    def __init__(self, sink: Any, topic: str = "mutuos.installments") -> None:
        self.sink = sink
        self.topic = topic
        self.count = 0

    def __call__(self, event: Event) -> None:
        self.sink.send(self.topic, event, key=event.subject)
        self.count += 1
        logger.debug("Forwarded %s for contract %s to %s", event.event_type, event.subject, self.topic)
