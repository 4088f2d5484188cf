"""Tests for combining files into a single bundle."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from patchbay_mcp.models import ConnectionConfig
from patchbay_mcp.services.bundle import BUNDLE_FILENAME, bundle_local, bundle_remote, format_section
from patchbay_mcp.services.errors import ReadFailed


def test_format_section() -> None:
    """Sections carry a path header and a separator."""
    assert format_section("a.py", "x = 1") == "# a.py\n\nx = 1\n\n---\n\n"


def test_bundle_local_in_selection_order(tmp_path: Path) -> None:
    """Files appear in the order selected and unreadable ones are skipped."""
    (tmp_path / "b.txt").write_text("bee")
    (tmp_path / "a.txt").write_text("ay")

    bundle = bundle_local(["b.txt", "missing.txt", "a.txt"], root_dir=str(tmp_path))

    assert bundle.content == "# b.txt\n\nbee\n\n---\n\n# a.txt\n\nay\n\n---\n\n"
    assert bundle.files == ["b.txt", "a.txt"]
    assert bundle.filename == BUNDLE_FILENAME
    assert bundle.to_dict()["filename"] == "combined_files.txt"


def test_bundle_local_empty_selection() -> None:
    """No files means an empty bundle."""
    bundle = bundle_local([])

    assert bundle.content == ""
    assert bundle.files == []


@pytest.mark.asyncio
async def test_bundle_remote_reads_under_root(connection_config: ConnectionConfig) -> None:
    """Remote paths are joined onto the root; failed reads are skipped."""

    async def read_file(config: ConnectionConfig, path: str) -> str:
        if path.endswith("locked"):
            raise ReadFailed("Failed to read /srv/locked", path=path)
        return f"contents of {path}"

    reader = MagicMock()
    reader.read_file = AsyncMock(side_effect=read_file)

    bundle = await bundle_remote(
        reader, connection_config, ["main.py", "locked"], root_dir="/srv"
    )

    assert bundle.content == "# main.py\n\ncontents of /srv/main.py\n\n---\n\n"
    assert bundle.files == ["main.py"]
