"""Tests for SSH session creation."""

from unittest.mock import AsyncMock, MagicMock, patch

import asyncssh
import pytest

from patchbay_mcp.models import ConnectionConfig
from patchbay_mcp.services.connection import make_connector, open_connection
from patchbay_mcp.services.errors import ConnectionFailed, ErrorKind


@pytest.mark.asyncio
async def test_open_connection_with_password(connection_config: ConnectionConfig) -> None:
    """Password auth connects without agent, default keys or host key checks."""
    mock_conn = MagicMock()

    with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
        mock_connect.return_value = mock_conn

        conn = await open_connection(connection_config, connect_timeout=3, keepalive_interval=7)

    assert conn is mock_conn
    mock_connect.assert_called_once_with(
        "10.0.0.5",
        port=22,
        username="deploy",
        password="s3cret",
        client_keys=[],
        agent_path=None,
        known_hosts=None,
        connect_timeout=3,
        keepalive_interval=7,
    )


@pytest.mark.asyncio
async def test_open_connection_imports_private_key() -> None:
    """Key material is imported with its passphrase and offered as a client key."""
    config = ConnectionConfig(
        host="build.internal", username="ci", private_key="KEY", passphrase="pw"
    )
    imported = MagicMock()

    with (
        patch("asyncssh.import_private_key", return_value=imported) as mock_import,
        patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect,
    ):
        await open_connection(config)

    mock_import.assert_called_once_with("KEY", "pw")
    assert mock_connect.call_args.kwargs["client_keys"] == [imported]
    assert mock_connect.call_args.kwargs["password"] is None


@pytest.mark.asyncio
async def test_open_connection_requires_credentials() -> None:
    """A config with neither password nor key is rejected before connecting."""
    config = ConnectionConfig(host="h", username="u")

    with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
        with pytest.raises(ConnectionFailed) as exc_info:
            await open_connection(config)

    mock_connect.assert_not_called()
    assert exc_info.value.kind is ErrorKind.AUTH_FAILED
    assert "No authentication method provided" in str(exc_info.value)


@pytest.mark.asyncio
async def test_open_connection_bad_key_is_auth_failure() -> None:
    """Keys that fail to import are reported as authentication failures."""
    config = ConnectionConfig(host="h", username="u", private_key="garbage")

    with patch(
        "asyncssh.import_private_key",
        side_effect=asyncssh.KeyImportError("Invalid private key"),
    ):
        with pytest.raises(ConnectionFailed) as exc_info:
            await open_connection(config)

    assert exc_info.value.kind is ErrorKind.AUTH_FAILED


@pytest.mark.asyncio
async def test_open_connection_permission_denied(connection_config: ConnectionConfig) -> None:
    """Rejected credentials map to AUTH_FAILED."""
    with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
        mock_connect.side_effect = asyncssh.PermissionDenied("Permission denied")

        with pytest.raises(ConnectionFailed) as exc_info:
            await open_connection(connection_config)

    assert exc_info.value.kind is ErrorKind.AUTH_FAILED
    assert exc_info.value.target == "deploy@10.0.0.5:22"


@pytest.mark.asyncio
async def test_open_connection_network_error(connection_config: ConnectionConfig) -> None:
    """Transport failures map to CONNECTION_FAILED and are not transient."""
    with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
        mock_connect.side_effect = ConnectionRefusedError("Connection refused")

        with pytest.raises(ConnectionFailed) as exc_info:
            await open_connection(connection_config)

    assert exc_info.value.kind is ErrorKind.CONNECTION_FAILED
    assert not exc_info.value.is_transient
    assert "Connection refused" in str(exc_info.value)


@pytest.mark.asyncio
async def test_make_connector_binds_timeouts(connection_config: ConnectionConfig) -> None:
    """Connectors pass their bound timeouts through to asyncssh."""
    connector = make_connector(connect_timeout=1.5, keepalive_interval=2.5)

    with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
        await connector(connection_config)

    assert mock_connect.call_args.kwargs["connect_timeout"] == 1.5
    assert mock_connect.call_args.kwargs["keepalive_interval"] == 2.5


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        OverflowError("connect(): port must be 0-65535."),
        UnicodeError("encoding with 'idna' codec failed"),
    ],
)
async def test_open_connection_invalid_address(
    connection_config: ConnectionConfig, error: Exception
) -> None:
    """Invalid ports and hostnames still surface as ConnectionFailed."""
    with patch("asyncssh.connect", new_callable=AsyncMock) as mock_connect:
        mock_connect.side_effect = error

        with pytest.raises(ConnectionFailed) as exc_info:
            await open_connection(connection_config)

    assert exc_info.value.kind is ErrorKind.CONNECTION_FAILED
    assert exc_info.value.__cause__ is error
