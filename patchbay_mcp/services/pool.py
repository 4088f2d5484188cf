"""SSH session pool with exclusive checkout and liveness probing.

Concurrency:
- The pool runs on a single event loop and holds no locks. Every
  checkout decision (sweep, match, capacity check) runs without an
  ``await`` in between, so it executes atomically.
- A reused session is marked ``in_use`` *before* its liveness probe is
  awaited, and a slot is reserved *before* a new session is connected,
  so two callers can never borrow the same session or overfill the pool.

Lifecycle:
- Sessions idle longer than ``idle_timeout`` or marked invalid are closed
  and removed at the start of the next checkout.
- When all ``max_size`` slots are taken, checkout opens an untracked
  overflow session instead of blocking; releasing it closes it.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

import asyncssh

from patchbay_mcp.models import ConnectionConfig, PooledSession
from patchbay_mcp.services.connection import Connector, make_connector
from patchbay_mcp.services.errors import ConnectionFailed, PatchbayError

logger = logging.getLogger(__name__)

PROBE_COMMAND = "true"


class SessionPool:
    """Bounded pool of authenticated SSH sessions."""

    def __init__(
        self,
        max_size: int = 5,
        idle_timeout: int = 300,
        probe_timeout: float = 2.0,
        connector: Connector | None = None,
    ) -> None:
        """Initialize pool.

        Args:
            max_size: Maximum number of tracked sessions (must be > 0)
            idle_timeout: Seconds an idle session survives before eviction
            probe_timeout: Seconds allowed for the liveness probe
            connector: Coroutine function opening a new connection

        Raises:
            ValueError: If max_size is not positive
        """
        if max_size <= 0:
            raise ValueError(f"max_size must be > 0, got {max_size}")

        self.max_size = max_size
        self.idle_timeout = idle_timeout
        self.probe_timeout = probe_timeout
        self._connector = connector or make_connector()
        self._sessions: list[PooledSession] = []
        self._pending = 0

        logger.info(
            "SessionPool initialized (idle_timeout=%ds, max_size=%d)",
            idle_timeout,
            max_size,
        )

    def _sweep(self) -> None:
        """Close and drop idle-expired or invalid sessions."""
        cutoff = datetime.now() - timedelta(seconds=self.idle_timeout)
        kept: list[PooledSession] = []

        for pooled in self._sessions:
            if pooled.in_use:
                kept.append(pooled)
                continue
            if pooled.last_used < cutoff or pooled.is_stale:
                reason = "idle" if pooled.is_valid else "invalid"
                logger.info(
                    "Closing %s session to %s",
                    reason,
                    pooled.config.display_name,
                )
                pooled.close()
                continue
            kept.append(pooled)

        if len(kept) != len(self._sessions):
            logger.debug(
                "Sweep removed %d session(s), %d remaining",
                len(self._sessions) - len(kept),
                len(kept),
            )
        self._sessions = kept

    def _find_idle(self, config: ConnectionConfig) -> PooledSession | None:
        key = config.pool_key
        for pooled in self._sessions:
            if not pooled.in_use and pooled.is_valid and pooled.config.pool_key == key:
                return pooled
        return None

    def _discard(self, pooled: PooledSession) -> None:
        """Close a session and remove it from the pool."""
        if pooled in self._sessions:
            self._sessions.remove(pooled)
        pooled.close()

    async def _probe(self, pooled: PooledSession) -> bool:
        """Run a trivial command to check the session is alive."""
        try:
            await asyncio.wait_for(
                pooled.connection.run(PROBE_COMMAND, check=False),
                timeout=self.probe_timeout,
            )
        except (asyncio.TimeoutError, OSError, asyncssh.Error) as e:
            logger.info(
                "Liveness probe to %s failed: %s",
                pooled.config.display_name,
                str(e) or type(e).__name__,
            )
            return False
        return True

    async def checkout(self, config: ConnectionConfig) -> PooledSession:
        """Borrow a session for the given config.

        The caller must hand the session back with ``release``.

        Raises:
            ConnectionFailed: If a new session cannot be authenticated
        """
        self._sweep()

        pooled = self._find_idle(config)
        if pooled is not None:
            pooled.in_use = True
            if await self._probe(pooled):
                pooled.touch()
                logger.debug(
                    "Reusing session to %s (pool_size=%d)",
                    config.display_name,
                    len(self._sessions),
                )
                return pooled
            self._discard(pooled)

        tracked = len(self._sessions) + self._pending < self.max_size
        if tracked:
            self._pending += 1
        else:
            logger.warning(
                "Pool at capacity (%d/%d), opening untracked session to %s",
                len(self._sessions),
                self.max_size,
                config.display_name,
            )

        try:
            conn = await self._connector(config)
        except PatchbayError:
            raise
        except Exception as e:
            raise ConnectionFailed(config.display_name, e) from e
        finally:
            if tracked:
                self._pending -= 1

        pooled = PooledSession(
            connection=conn, config=config, in_use=True, tracked=tracked
        )
        if tracked:
            self._sessions.append(pooled)
            logger.info(
                "Session established to %s (pool_size=%d/%d)",
                config.display_name,
                len(self._sessions),
                self.max_size,
            )
        return pooled

    def release(self, pooled: PooledSession) -> None:
        """Return a borrowed session to the pool without closing it."""
        if not pooled.tracked:
            logger.debug("Closing untracked session to %s", pooled.config.display_name)
            pooled.close()
            return
        pooled.in_use = False
        pooled.touch()

    def invalidate(self, pooled: PooledSession) -> None:
        """Mark a session unusable; it is evicted on the next sweep."""
        pooled.is_valid = False

    @asynccontextmanager
    async def session(self, config: ConnectionConfig) -> AsyncIterator[PooledSession]:
        """Check out a session for the duration of a block."""
        pooled = await self.checkout(config)
        try:
            yield pooled
        finally:
            self.release(pooled)

    async def close_all(self) -> None:
        """Close every tracked session and empty the pool."""
        sessions, self._sessions = self._sessions, []
        if sessions:
            logger.info("Closing all %d session(s)", len(sessions))
        for pooled in sessions:
            pooled.close()

    @property
    def pool_size(self) -> int:
        """Return the number of tracked sessions."""
        return len(self._sessions)

    @property
    def in_use_count(self) -> int:
        """Return the number of tracked sessions currently borrowed."""
        return sum(1 for s in self._sessions if s.in_use)

    @property
    def active_targets(self) -> list[str]:
        """Return user@host:port of every tracked session."""
        return [s.config.display_name for s in self._sessions]
