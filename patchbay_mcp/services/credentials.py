"""Private key loading for SSH authentication."""

import logging
import os
from pathlib import Path

from patchbay_mcp.services.errors import (
    KeyFileIsDirectory,
    KeyFileNotFound,
    KeyFileNotText,
)

logger = logging.getLogger(__name__)

ENCRYPTED_MARKER = "ENCRYPTED"


def expand_key_path(key_path: str) -> Path:
    """Expand a leading ``~`` to the user's home directory."""
    return Path(os.path.expanduser(key_path))


def read_private_key(key_path: str) -> str:
    """Read a private key file as text.

    Args:
        key_path: Path to the key, possibly ``~``-relative

    Returns:
        Raw key contents

    Raises:
        KeyFileNotFound: If nothing exists at the path
        KeyFileIsDirectory: If the path is a directory
        KeyFileNotText: If the contents are not UTF-8 text
        OSError: Any other I/O failure, unchanged
    """
    path = expand_key_path(key_path)
    try:
        contents = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise KeyFileNotFound(f"Identity file not found: {path}", path=str(path)) from e
    except IsADirectoryError as e:
        raise KeyFileIsDirectory(
            f"Identity file is a directory: {path}", path=str(path)
        ) from e
    except UnicodeDecodeError as e:
        raise KeyFileNotText(
            f"Identity file is not a text key: {path}", path=str(path)
        ) from e

    logger.debug("Loaded private key from %s", path)
    return contents


def key_needs_passphrase(contents: str) -> bool:
    """Heuristically decide whether key text is passphrase-protected.

    Looks for the ``ENCRYPTED`` marker PEM headers carry; no key parsing.
    """
    return ENCRYPTED_MARKER in contents


def check_key_needs_passphrase(key_path: str) -> bool:
    """Read a key file and report whether it needs a passphrase."""
    return key_needs_passphrase(read_private_key(key_path))
