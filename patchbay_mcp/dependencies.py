"""Dependency injection container for Patchbay MCP."""

from dataclasses import dataclass

from patchbay_mcp.config import Settings
from patchbay_mcp.services.connection import Connector, make_connector
from patchbay_mcp.services.pool import SessionPool
from patchbay_mcp.services.reader import RemoteReader


@dataclass
class Dependencies:
    """Container for Patchbay MCP dependencies.

    Holds settings, the shared session pool and the remote reader built on
    it. Pass this to actions that need any of them.

    Example:
        deps = Dependencies.create()
        result = await read_remote_directory(deps, connection, "/srv/app")
        await deps.cleanup()
    """

    settings: Settings
    pool: SessionPool
    reader: RemoteReader
    connector: Connector

    @classmethod
    def create(cls) -> "Dependencies":
        """Create dependencies from environment settings.

        Returns:
            Initialized Dependencies instance
        """
        return cls.from_settings(Settings.from_env())

    @classmethod
    def from_settings(
        cls, settings: Settings, connector: Connector | None = None
    ) -> "Dependencies":
        """Create dependencies with custom settings.

        Args:
            settings: Settings instance
            connector: Override for opening SSH connections (tests)

        Returns:
            Dependencies with pool and reader initialized from settings
        """
        connector = connector or make_connector(
            connect_timeout=settings.connect_timeout,
            keepalive_interval=settings.keepalive_interval,
        )
        pool = SessionPool(
            max_size=settings.max_pool_size,
            idle_timeout=settings.idle_timeout,
            probe_timeout=settings.probe_timeout,
            connector=connector,
        )
        reader = RemoteReader(
            pool,
            max_retries=settings.max_retries,
            retry_backoff=settings.retry_backoff,
            sftp_init_timeout=settings.sftp_init_timeout,
            connector=connector,
        )
        return cls(settings=settings, pool=pool, reader=reader, connector=connector)

    async def cleanup(self) -> None:
        """Clean up resources (close all pooled sessions)."""
        await self.pool.close_all()
