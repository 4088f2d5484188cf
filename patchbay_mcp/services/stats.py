"""Line, character and token totals over a selection of files."""

import asyncio
import logging
import os
import posixpath
import unicodedata

from patchbay_mcp.models import ConnectionConfig, FileMeasure, FileStats
from patchbay_mcp.services.errors import PatchbayError
from patchbay_mcp.services.reader import RemoteReader

logger = logging.getLogger(__name__)

CODE_SYMBOLS = frozenset("{}[]()=+-*/<>!&|^%")


def _is_separator(char: str) -> bool:
    return char.isspace() or unicodedata.category(char).startswith("P")


def estimate_tokens(text: str) -> int:
    """Rough token count for source text.

    Counts the non-empty pieces left after splitting on whitespace and
    Unicode punctuation, plus one per code symbol in ``CODE_SYMBOLS``.
    """
    words = 0
    in_word = False
    for char in text:
        if _is_separator(char):
            in_word = False
        elif not in_word:
            words += 1
            in_word = True

    symbols = sum(1 for char in text if char in CODE_SYMBOLS)
    return words + symbols


def measure(text: str, path: str = "") -> FileMeasure:
    """Count lines (newline-delimited segments), characters and tokens."""
    return FileMeasure(
        path=path,
        lines=text.count("\n") + 1,
        characters=len(text),
        tokens=estimate_tokens(text),
    )


def _resolve_local(path: str, root_dir: str | None) -> str:
    if root_dir:
        return os.path.join(root_dir, path)
    return os.path.abspath(path)


def compute_local_stats(paths: list[str], root_dir: str | None = None) -> FileStats:
    """Aggregate counts over local files.

    Args:
        paths: Files to measure, relative to root_dir when given
        root_dir: Directory the paths are relative to

    Returns:
        Totals; unreadable files are logged and contribute nothing
    """
    stats = FileStats(files=len(paths))
    for path in paths:
        absolute = _resolve_local(path, root_dir)
        try:
            with open(absolute, encoding="utf-8", errors="replace", newline="") as f:
                content = f.read()
        except OSError as e:
            logger.error("Failed to read file %s: %s", path, e)
            continue
        stats.add(measure(content, path))
    return stats


async def compute_remote_stats(
    reader: RemoteReader,
    config: ConnectionConfig,
    paths: list[str],
    root_dir: str | None = None,
    batch_size: int = 5,
) -> FileStats:
    """Aggregate counts over remote files.

    Files are read in batches of ``batch_size`` concurrent reads. A file
    whose read fails (after the reader's retries) is logged and skipped.
    """
    stats = FileStats(files=len(paths))

    async def read_one(path: str) -> FileMeasure | None:
        remote_path = posixpath.join(root_dir, path) if root_dir else path
        try:
            content = await reader.read_file(config, remote_path)
        except PatchbayError as e:
            logger.error("Failed to read remote file %s: %s", path, e)
            return None
        return measure(content, path)

    for start in range(0, len(paths), batch_size):
        batch = paths[start : start + batch_size]
        for result in await asyncio.gather(*(read_one(p) for p in batch)):
            if result is not None:
                stats.add(result)

    logger.debug(
        "Computed stats for %d/%d remote file(s) on %s",
        len(stats.file_stats),
        len(paths),
        config.display_name,
    )
    return stats
