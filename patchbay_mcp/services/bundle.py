"""Concatenate selected files into one downloadable text blob."""

import logging
import os
import posixpath

from patchbay_mcp.models import Bundle, ConnectionConfig
from patchbay_mcp.services.errors import PatchbayError
from patchbay_mcp.services.reader import RemoteReader

logger = logging.getLogger(__name__)

BUNDLE_FILENAME = "combined_files.txt"


def format_section(path: str, content: str) -> str:
    """Render one file as a bundle section."""
    return f"# {path}\n\n{content}\n\n---\n\n"


def bundle_local(paths: list[str], root_dir: str | None = None) -> Bundle:
    """Bundle local files in selection order, skipping unreadable ones."""
    sections: list[str] = []
    included: list[str] = []
    for path in paths:
        absolute = os.path.join(root_dir, path) if root_dir else os.path.abspath(path)
        try:
            with open(absolute, encoding="utf-8", errors="replace", newline="") as f:
                content = f.read()
        except OSError as e:
            logger.error("Failed to read file %s: %s", path, e)
            continue
        sections.append(format_section(path, content))
        included.append(path)
    return Bundle(content="".join(sections), files=included, filename=BUNDLE_FILENAME)


async def bundle_remote(
    reader: RemoteReader,
    config: ConnectionConfig,
    paths: list[str],
    root_dir: str | None = None,
) -> Bundle:
    """Bundle remote files in selection order, skipping unreadable ones."""
    sections: list[str] = []
    included: list[str] = []
    for path in paths:
        remote_path = posixpath.join(root_dir, path) if root_dir else path
        try:
            content = await reader.read_file(config, remote_path)
        except PatchbayError as e:
            logger.error("Failed to read remote file %s: %s", path, e)
            continue
        sections.append(format_section(path, content))
        included.append(path)
    return Bundle(content="".join(sections), files=included, filename=BUNDLE_FILENAME)
