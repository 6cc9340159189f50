"""JSON-ready conversion of engine records for sinks.

Amounts (``Money`` and ``Decimal``) are written as strings so no cent is
lost between the ledger and downstream consumers.
"""

from dataclasses import fields, is_dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from mutuos.money import Money


def serialize_value(value: Any) -> Any:
    """Convert one value to something ``json.dumps`` accepts."""
    if isinstance(value, (Money, Decimal)):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):  # datetime too
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return record_fields(value)
    if isinstance(value, dict):
        return {serialize_value(k): serialize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    return value


def record_fields(record: Any) -> dict[str, Any]:
    """Dataclass fields as a JSON-ready dict.

    Unlike ``dataclasses.asdict`` this keeps ``Money`` whole instead of
    expanding it into ``{"amount": ...}``.
    """
    return {f.name: serialize_value(getattr(record, f.name)) for f in fields(record)}


def to_dict(record: Any) -> dict[str, Any]:
    """Convert a sink record (dataclass or mapping) to a JSON-ready dict."""
    if is_dataclass(record) and not isinstance(record, type):
        return record_fields(record)
    if isinstance(record, dict):
        return serialize_value(record)
    return {"value": str(record)}
