"""Base models shared across the engine."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Event:
    """Standard event envelope for streaming."""

    event_id: str
    event_type: str  # entity.action (e.g., installment.settled)
    event_time: datetime
    source: str  # Service/system that generated
    subject: str  # Contract ID affected
    data: dict
    metadata: dict = field(default_factory=dict)
