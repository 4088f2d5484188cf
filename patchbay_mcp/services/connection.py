"""SSH session creation."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

import asyncssh

from patchbay_mcp.models import ConnectionConfig
from patchbay_mcp.services.errors import ConnectionFailed, ErrorKind, classify_error

logger = logging.getLogger(__name__)

Connector = Callable[[ConnectionConfig], Awaitable[asyncssh.SSHClientConnection]]


def _load_client_keys(config: ConnectionConfig) -> list[asyncssh.SSHKey]:
    """Import the private key carried by the config, if any."""
    if not config.private_key:
        return []
    try:
        return [asyncssh.import_private_key(config.private_key, config.passphrase)]
    except (asyncssh.KeyImportError, asyncssh.KeyEncryptionError) as e:
        raise ConnectionFailed(
            config.display_name, e, kind=ErrorKind.AUTH_FAILED
        ) from e


async def open_connection(
    config: ConnectionConfig,
    connect_timeout: float = 10.0,
    keepalive_interval: float = 5.0,
) -> asyncssh.SSHClientConnection:
    """Open and authenticate a new SSH connection.

    Host keys are not verified and no agent or default keys are consulted;
    only the password and key material in the config are offered.

    Args:
        config: Connection parameters
        connect_timeout: Seconds allowed for connect and handshake
        keepalive_interval: Seconds between keepalive probes

    Returns:
        Authenticated connection

    Raises:
        ConnectionFailed: If the key cannot be imported, the address is
            invalid, or the transport/authentication fails
    """
    if not config.password and not config.private_key:
        raise ConnectionFailed(
            config.display_name,
            ValueError("No authentication method provided"),
            kind=ErrorKind.AUTH_FAILED,
        )

    client_keys = _load_client_keys(config)

    logger.info("Opening SSH connection to %s", config.display_name)
    try:
        conn = await asyncssh.connect(
            config.host,
            port=config.port,
            username=config.username,
            password=config.password,
            client_keys=client_keys,
            agent_path=None,
            known_hosts=None,
            connect_timeout=connect_timeout,
            keepalive_interval=keepalive_interval,
        )
    except (OSError, asyncssh.Error, asyncio.TimeoutError) as e:
        kind = classify_error(e)
        if kind is not ErrorKind.AUTH_FAILED:
            kind = ErrorKind.CONNECTION_FAILED
        logger.warning("SSH connection to %s failed: %s", config.display_name, e)
        raise ConnectionFailed(config.display_name, e, kind=kind) from e
    except Exception as e:
        # Bad ports (OverflowError) and bad hostnames (IDNA UnicodeError)
        logger.warning("SSH connection to %s failed: %s", config.display_name, e)
        raise ConnectionFailed(config.display_name, e) from e

    logger.debug("SSH connection established to %s", config.display_name)
    return conn


def make_connector(
    connect_timeout: float = 10.0,
    keepalive_interval: float = 5.0,
) -> Connector:
    """Bind timeouts into a connector usable by the pool, reader and applier."""

    async def connector(config: ConnectionConfig) -> asyncssh.SSHClientConnection:
        return await open_connection(
            config,
            connect_timeout=connect_timeout,
            keepalive_interval=keepalive_interval,
        )

    return connector
