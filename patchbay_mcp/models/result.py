"""Uniform result shape returned by every action entry point."""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass
class ActionResult(Generic[T]):
    """Result of a public action.

    Either ``success=True`` with ``data``, or ``success=False`` with a
    message describing what failed.
    """

    success: bool
    message: str
    data: T | None = None

    @classmethod
    def ok(cls, data: T, message: str = "") -> "ActionResult[T]":
        """Build a successful result."""
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str, data: T | None = None) -> "ActionResult[T]":
        """Build a failed result."""
        return cls(success=False, message=message, data=data)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for tool responses, expanding nested models."""
        return {
            "success": self.success,
            "message": self.message,
            "data": _serialize(self.data),
        }


def _serialize(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value
