"""Filesystem entry models."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class RemoteEntry:
    """One entry from a remote directory listing.

    Built fresh on every listing call and never mutated.
    """

    name: str
    path: str
    is_directory: bool
    size: int = 0
    modify_time: datetime | None = None
    content: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialize for tool responses."""
        data: dict[str, object] = {
            "name": self.name,
            "path": self.path,
            "is_directory": self.is_directory,
            "size": self.size,
            "modify_time": self.modify_time.isoformat() if self.modify_time else None,
        }
        if self.content is not None:
            data["content"] = self.content
        return data


@dataclass(frozen=True)
class LocalEntry:
    """One entry from a local directory listing."""

    name: str
    path: str
    is_directory: bool

    def to_dict(self) -> dict[str, object]:
        """Serialize for tool responses."""
        return {"name": self.name, "path": self.path, "is_directory": self.is_directory}
