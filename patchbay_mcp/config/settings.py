"""Application settings from environment variables.

Centralized environment variable parsing and validation.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Application settings from environment.

    Handles parsing, validation, and defaults for all PATCHBAY_* env vars.
    """

    # Session pool
    max_pool_size: int = field(default=5)
    idle_timeout: int = field(default=300)
    probe_timeout: float = field(default=2.0)

    # SSH transport
    connect_timeout: float = field(default=10.0)
    keepalive_interval: float = field(default=5.0)
    sftp_init_timeout: float = field(default=10.0)

    # Remote reads
    max_retries: int = field(default=2)
    retry_backoff: float = field(default=1.0)
    stats_batch_size: int = field(default=5)

    # Applying change-sets
    project_directory: str = field(default="")

    # SSH config
    ssh_config_path: Path = field(default_factory=lambda: Path.home() / ".ssh" / "config")

    # Transport
    transport: str = field(default="http")
    http_host: str = field(default="0.0.0.0")
    http_port: int = field(default=8000)

    # Logging
    log_level: str = field(default="INFO")
    log_colors: bool = field(default=True)
    log_payloads: bool = field(default=False)
    slow_threshold_ms: int = field(default=1000)
    include_traceback: bool = field(default=False)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables.

        Returns:
            Settings instance with values from environment
        """
        ssh_config = os.getenv("PATCHBAY_SSH_CONFIG")
        return cls(
            max_pool_size=cls._get_positive_int("PATCHBAY_MAX_POOL_SIZE", 5),
            idle_timeout=cls._get_int("PATCHBAY_IDLE_TIMEOUT", 300),
            probe_timeout=cls._get_float("PATCHBAY_PROBE_TIMEOUT", 2.0),
            connect_timeout=cls._get_float("PATCHBAY_CONNECT_TIMEOUT", 10.0),
            keepalive_interval=cls._get_float("PATCHBAY_KEEPALIVE_INTERVAL", 5.0),
            sftp_init_timeout=cls._get_float("PATCHBAY_SFTP_INIT_TIMEOUT", 10.0),
            max_retries=cls._get_int("PATCHBAY_MAX_RETRIES", 2),
            retry_backoff=cls._get_float("PATCHBAY_RETRY_BACKOFF", 1.0),
            stats_batch_size=cls._get_positive_int("PATCHBAY_STATS_BATCH_SIZE", 5),
            project_directory=os.getenv("PATCHBAY_PROJECT_DIRECTORY", "").strip(),
            ssh_config_path=(
                Path(ssh_config).expanduser()
                if ssh_config
                else Path.home() / ".ssh" / "config"
            ),
            transport=cls._get_transport(),
            http_host=os.getenv("PATCHBAY_HTTP_HOST", "0.0.0.0"),
            http_port=cls._get_int("PATCHBAY_HTTP_PORT", 8000),
            log_level=os.getenv("PATCHBAY_LOG_LEVEL", "INFO"),
            log_colors=cls._get_bool("PATCHBAY_LOG_COLORS", True),
            log_payloads=cls._get_bool("PATCHBAY_LOG_PAYLOADS", False),
            slow_threshold_ms=cls._get_int("PATCHBAY_SLOW_THRESHOLD_MS", 1000),
            include_traceback=cls._get_bool("PATCHBAY_INCLUDE_TRACEBACK", False),
        )

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Get integer from environment.

        Args:
            key: Environment variable key
            default: Default value if not set or invalid

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

    @classmethod
    def _get_positive_int(cls, key: str, default: int) -> int:
        """Get an integer that must be greater than zero."""
        value = cls._get_int(key, default)
        if value <= 0:
            logger.warning("%s must be > 0, got %d, using default %d", key, value, default)
            return default
        return value

    @staticmethod
    def _get_float(key: str, default: float) -> float:
        """Get float from environment, falling back to default when invalid."""
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return float(value)
        except ValueError:
            logger.warning("Invalid number for %s: %s, using default %s", key, value, default)
            return default

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _get_transport() -> str:
        """Get transport from environment with validation.

        Returns:
            Transport type ("http" or "stdio")
        """
        transport = os.getenv("PATCHBAY_TRANSPORT", "").lower()
        if transport in ("http", "stdio"):
            return transport
        return "http"
