"""JSON serialization for operation payloads."""

import json
from dataclasses import fields, is_dataclass
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

CENT = Decimal("0.01")


def to_camel(name: str) -> str:
    """Convert a snake_case field name to camelCase."""
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def to_dict(obj: Any) -> dict:
    """Convert object to a camelCase dictionary ready for JSON."""
    if is_dataclass(obj):
        return dataclass_to_dict(obj)
    elif isinstance(obj, dict):
        return {k: serialize_value(v) for k, v in obj.items()}
    else:
        return {"value": str(obj)}


def dataclass_to_dict(obj: Any) -> dict:
    """Convert dataclass to dict with camelCase keys.

    Uses ``fields()`` + ``getattr`` rather than ``asdict()`` so nested
    dataclasses are converted by ``serialize_value`` with the same rules.
    """
    return {to_camel(f.name): serialize_value(getattr(obj, f.name)) for f in fields(obj)}


def format_instant(value: datetime) -> str:
    """Render an instant as ISO-8601 UTC with milliseconds, e.g. 2024-03-01T00:00:00.000Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def format_money(value: Decimal) -> float:
    """Round a money amount to cents for output."""
    return float(value.quantize(CENT, rounding=ROUND_HALF_UP))


def serialize_value(value: Any) -> Any:
    """Serialize a value for JSON output."""
    if isinstance(value, Decimal):
        return format_money(value)
    elif isinstance(value, Enum):
        return value.value
    elif isinstance(value, datetime):
        return format_instant(value)
    elif isinstance(value, date):
        return value.isoformat()
    elif is_dataclass(value) and not isinstance(value, type):
        return dataclass_to_dict(value)
    elif isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    elif isinstance(value, (list, tuple, set, frozenset)):
        return [serialize_value(v) for v in value]
    return value


def dumps(obj: Any, pretty: bool = False) -> str:
    """Encode an operation payload as a JSON string."""
    if pretty:
        return json.dumps(to_dict(obj), indent=2, ensure_ascii=False)
    return json.dumps(to_dict(obj), ensure_ascii=False)
