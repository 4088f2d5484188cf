"""SSH config file parser.

Reads ~/.ssh/config and extracts host blocks for connection pickers.
"""

import logging
import os
import re
from pathlib import Path

from patchbay_mcp.models import SSHConfigHost

logger = logging.getLogger(__name__)


class SSHConfigParser:
    """Parser for SSH config files.

    Only ``HostName``, ``User``, ``Port`` and ``IdentityFile`` are read.
    Wildcard blocks (``Host *``) are skipped.
    """

    def __init__(self, config_path: Path | str | None = None):
        """Initialize SSH config parser.

        Args:
            config_path: Path to SSH config file (default: ~/.ssh/config)
        """
        if config_path is None:
            config_path = Path.home() / ".ssh" / "config"

        self.config_path = Path(config_path)

    def parse(self) -> list[SSHConfigHost]:
        """Parse SSH config and return host blocks in file order.

        Identity files that do not exist on disk are dropped from their
        host entry; the host itself is kept.

        Returns:
            Host entries (empty if the file is missing or unreadable)
        """
        if not self.config_path.exists():
            logger.warning("SSH config not found: %s", self.config_path)
            return []

        try:
            content = self.config_path.read_text(encoding="utf-8")
            logger.debug("Reading SSH config from %s", self.config_path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read SSH config %s: %s", self.config_path, e)
            return []

        hosts: list[SSHConfigHost] = []
        current: SSHConfigHost | None = None

        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            host_match = re.match(r"^Host\s+(.+)$", line, re.IGNORECASE)
            if host_match:
                name = host_match.group(1).strip()
                if "*" in name or "?" in name:
                    current = None
                    continue
                current = SSHConfigHost(name=name)
                hosts.append(current)
                continue

            kv_match = re.match(r"^(\w+)(?:\s*=\s*|\s+)(.+)$", line)
            if not kv_match or current is None:
                continue

            key = kv_match.group(1).lower()
            value = kv_match.group(2).strip()
            if key == "hostname":
                current.hostname = value
            elif key == "user":
                current.user = value
            elif key == "port":
                try:
                    current.port = int(value)
                except ValueError:
                    logger.warning("Invalid port for host %s: %s", current.name, value)
            elif key == "identityfile":
                current.identity_file = os.path.expanduser(value)

        for host in hosts:
            if host.identity_file and not os.path.exists(host.identity_file):
                logger.debug(
                    "Dropping missing identity file %s for host %s",
                    host.identity_file,
                    host.name,
                )
                host.identity_file = None

        logger.info("Parsed %d hosts from %s", len(hosts), self.config_path)
        return hosts
