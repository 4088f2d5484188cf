"""Selection statistics and bundle models."""

from dataclasses import dataclass, field


@dataclass
class FileMeasure:
    """Counts for a single file."""

    path: str
    lines: int
    characters: int
    tokens: int


@dataclass
class FileStats:
    """Aggregate counts over a selection of files."""

    lines: int = 0
    characters: int = 0
    tokens: int = 0
    files: int = 0
    file_stats: list[FileMeasure] = field(default_factory=list)

    def add(self, measure: FileMeasure) -> None:
        """Fold one file's counts into the totals."""
        self.lines += measure.lines
        self.characters += measure.characters
        self.tokens += measure.tokens
        self.file_stats.append(measure)

    def to_dict(self) -> dict[str, object]:
        """Serialize for tool responses."""
        return {
            "lines": self.lines,
            "characters": self.characters,
            "tokens": self.tokens,
            "files": self.files,
            "file_stats": [
                {"path": m.path, "characters": m.characters} for m in self.file_stats
            ],
        }


@dataclass
class Bundle:
    """Selected files concatenated into one text blob."""

    content: str
    files: list[str] = field(default_factory=list)
    filename: str = "combined_files.txt"

    def to_dict(self) -> dict[str, object]:
        """Serialize for tool responses."""
        return {"content": self.content, "filename": self.filename, "files": self.files}
