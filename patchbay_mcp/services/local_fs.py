"""Local directory browsing with .gitignore filtering."""

import logging
import os
from pathlib import Path

import pathspec

from patchbay_mcp.models import LocalEntry

logger = logging.getLogger(__name__)


def find_root_gitignore(start: str | Path) -> Path | None:
    """Return the nearest .gitignore at or above ``start``."""
    current = Path(start).resolve()
    for directory in (current, *current.parents):
        candidate = directory / ".gitignore"
        if candidate.is_file():
            logger.debug("Found .gitignore at %s", candidate)
            return candidate
    return None


def load_ignore_spec(start: str | Path) -> tuple[pathspec.GitIgnoreSpec | None, Path]:
    """Load gitignore rules governing ``start``.

    Returns:
        The compiled spec (None if there is no .gitignore) and the
        directory paths must be made relative to before matching
    """
    gitignore = find_root_gitignore(start)
    if gitignore is None:
        return None, Path(start).resolve()

    try:
        lines = gitignore.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        logger.warning("Failed to read %s: %s", gitignore, e)
        return None, gitignore.parent
    return pathspec.GitIgnoreSpec.from_lines(lines), gitignore.parent


def _is_ignored(
    spec: pathspec.GitIgnoreSpec | None, root: Path, path: Path, is_dir: bool
) -> bool:
    if spec is None:
        return False
    relative = path.relative_to(root).as_posix()
    if is_dir:
        relative += "/"
    return spec.match_file(relative)


def read_directory(path: str | Path) -> list[LocalEntry]:
    """List one directory level, skipping dotfiles and ignored paths.

    Raises:
        OSError: If the directory cannot be read
    """
    directory = Path(path).resolve()
    spec, root = load_ignore_spec(directory)

    entries: list[LocalEntry] = []
    with os.scandir(directory) as it:
        for item in sorted(it, key=lambda e: e.name):
            if item.name.startswith("."):
                continue
            full = directory / item.name
            is_dir = item.is_dir()
            if _is_ignored(spec, root, full, is_dir):
                logger.debug("Ignoring path %s", full)
                continue
            entries.append(LocalEntry(name=item.name, path=str(full), is_directory=is_dir))
    return entries


def list_files_recursive(path: str | Path) -> list[str]:
    """Return every non-hidden, non-ignored file below ``path``.

    Raises:
        OSError: If ``path`` cannot be read
    """
    directory = Path(path).resolve()
    spec, root = load_ignore_spec(directory)
    files: list[str] = []

    def walk(current: Path) -> None:
        with os.scandir(current) as it:
            items = sorted(it, key=lambda e: e.name)
        for item in items:
            if item.name.startswith("."):
                continue
            full = current / item.name
            is_dir = item.is_dir()
            if _is_ignored(spec, root, full, is_dir):
                continue
            if is_dir:
                walk(full)
            else:
                files.append(str(full))

    walk(directory)
    return files


def find_similar_paths(base: str | Path, search: str, limit: int = 5) -> list[str]:
    """Suggest entries resembling the last component of ``search``.

    Looks in the parent directory of ``search`` (relative parents resolve
    against ``base``) for names that contain, or are contained in, the
    search name, case-insensitively. Missing directories yield no
    suggestions.
    """
    parent = os.path.dirname(search)
    search_dir = Path(base) / parent if parent else Path(base)
    if not search_dir.is_dir():
        return []

    needle = os.path.basename(search).lower()
    suggestions: list[str] = []
    try:
        with os.scandir(search_dir) as it:
            names = sorted(e.name for e in it)
    except OSError as e:
        logger.warning("Failed to scan %s for similar paths: %s", search_dir, e)
        return []

    for name in names:
        if name.startswith("."):
            continue
        lowered = name.lower()
        if needle in lowered or lowered in needle:
            suggestions.append(str(search_dir / name))
            if len(suggestions) >= limit:
                break
    return suggestions
