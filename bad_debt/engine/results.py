"""Success/failure envelopes returned by every operation."""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from bad_debt.serialization import dumps, to_dict

T = TypeVar("T")


@dataclass
class Success(Generic[T]):
    data: T

    @property
    def ok(self) -> bool:
        return True

    def to_payload(self) -> dict[str, Any]:
        return {"success": True, **to_dict(self.data)}

    def to_json(self) -> str:
        return dumps(self.to_payload())


@dataclass
class Failure:
    """Business failure reported to the caller instead of raised.

    ``empty`` carries the operation's data keys with empty values so callers
    reading e.g. ``loans`` keep working.
    """

    message: str
    error_type: str
    empty: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return False

    def to_payload(self) -> dict[str, Any]:
        return {
            "success": False,
            "message": self.message,
            "errorType": self.error_type,
            **to_dict(self.empty),
        }

    def to_json(self) -> str:
        return dumps(self.to_payload())


OperationResult = Success | Failure
