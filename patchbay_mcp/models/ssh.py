"""SSH-related data models."""

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import asyncssh


@dataclass
class SSHConfigHost:
    """Host block from an SSH config file.

    Fields other than ``name`` are None when the block does not set them.
    """

    name: str
    hostname: str | None = None
    user: str | None = None
    port: int | None = None
    identity_file: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialize for tool responses."""
        return {
            "name": self.name,
            "hostname": self.hostname,
            "user": self.user,
            "port": self.port,
            "identity_file": self.identity_file,
        }


@dataclass(frozen=True)
class ConnectionConfig:
    """Connection parameters for one SSH account.

    Immutable once built; the pool derives its lookup key from it.
    """

    host: str
    username: str
    port: int = 22
    password: str | None = field(default=None, repr=False)
    private_key: str | None = field(default=None, repr=False)
    passphrase: str | None = field(default=None, repr=False)

    @property
    def credential_fingerprint(self) -> str:
        """Digest of the auth material, never the material itself."""
        digest = hashlib.sha256()
        for part in (self.password, self.private_key, self.passphrase):
            digest.update(b"\x00" if part is None else b"\x01" + part.encode("utf-8"))
            digest.update(b"\x1f")
        return digest.hexdigest()[:16]

    @property
    def pool_key(self) -> tuple[str, int, str, str]:
        """Key used to match pooled sessions.

        Includes the credential fingerprint so that two configs for the
        same account with different credentials never share a session.
        """
        return (self.host, self.port, self.username, self.credential_fingerprint)

    @property
    def display_name(self) -> str:
        """Return user@host:port for log lines."""
        return f"{self.username}@{self.host}:{self.port}"

    def with_private_key(
        self, private_key: str, passphrase: str | None = None
    ) -> "ConnectionConfig":
        """Return a copy carrying the given key material."""
        return ConnectionConfig(
            host=self.host,
            username=self.username,
            port=self.port,
            password=self.password,
            private_key=private_key,
            passphrase=passphrase if passphrase is not None else self.passphrase,
        )


@dataclass
class PooledSession:
    """A pooled SSH session with checkout bookkeeping."""

    connection: "asyncssh.SSHClientConnection"
    config: ConnectionConfig
    last_used: datetime = field(default_factory=datetime.now)
    in_use: bool = False
    is_valid: bool = True
    tracked: bool = True

    def touch(self) -> None:
        """Update last-used timestamp."""
        self.last_used = datetime.now()

    @property
    def is_stale(self) -> bool:
        """Check if the session is invalid or its transport was closed."""
        if not self.is_valid:
            return True
        return bool(self.connection.is_closed())

    def close(self) -> None:
        """Close the underlying transport."""
        self.is_valid = False
        self.connection.close()
