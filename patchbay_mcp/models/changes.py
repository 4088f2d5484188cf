"""Change-set data models."""

from dataclasses import dataclass, field
from enum import Enum


class OperationKind(str, Enum):
    """Kind of file operation in a change-set."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    @property
    def requires_content(self) -> bool:
        """CREATE and UPDATE carry file content; DELETE does not."""
        return self is not OperationKind.DELETE


@dataclass(frozen=True)
class FileOperation:
    """A single parsed file operation, relative to an apply root."""

    kind: OperationKind
    path: str
    content: str | None = None
    summary: str = ""

    def __post_init__(self) -> None:
        """Reject CREATE/UPDATE operations without content."""
        if self.kind.requires_content and self.content is None:
            raise ValueError(f"{self.kind.value} operation on {self.path} has no content")


@dataclass
class OperationOutcome:
    """Result of applying one file operation."""

    operation: FileOperation
    success: bool
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialize for tool responses."""
        return {
            "operation": self.operation.kind.value,
            "path": self.operation.path,
            "success": self.success,
            "error": self.error,
        }


@dataclass
class ApplyReport:
    """Per-operation outcomes of one change-set, in document order."""

    outcomes: list[OperationOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[OperationOutcome]:
        """Outcomes that applied cleanly."""
        return [o for o in self.outcomes if o.success]

    @property
    def failed(self) -> list[OperationOutcome]:
        """Outcomes that raised."""
        return [o for o in self.outcomes if not o.success]

    @property
    def all_succeeded(self) -> bool:
        """True when no operation failed."""
        return not self.failed

    def to_dict(self) -> dict[str, object]:
        """Serialize for tool responses."""
        return {
            "applied": len(self.succeeded),
            "failed": len(self.failed),
            "outcomes": [o.to_dict() for o in self.outcomes],
        }
