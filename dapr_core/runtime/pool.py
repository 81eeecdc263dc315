"""
Shared outbound connection pool for sidecar traffic.

One ConnectionPool is meant to be shared by every client in a process.
Idle keep-alive connections are dropped after ``keepalive_expiry`` seconds,
and the whole underlying httpx.AsyncClient is replaced once it is older than
``connection_lease_timeout`` so that no connection outlives a backend
replica after a rolling deployment, even when DNS answers do not change.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from loguru import logger

from dapr_core import __version__

DEFAULT_MAX_CONNECTIONS = 50
DEFAULT_KEEPALIVE_EXPIRY = 120.0
DEFAULT_CONNECTION_LEASE_TIMEOUT = 120.0
USER_AGENT = f"dapr-core/{__version__}"


class _Generation:
    """One httpx.AsyncClient plus the number of requests currently using it."""

    def __init__(self, client: httpx.AsyncClient, created_at: float):
        self.client = client
        self.created_at = created_at
        self.in_flight = 0


class ConnectionPool:
    """Pooled httpx.AsyncClient with periodic connection recycling.

    Lease bookkeeping never awaits, so a cancelled request cannot leave a
    generation with a stale in-flight count. Closing retired clients is
    shielded from the caller's cancellation.

    Example:
        pool = ConnectionPool()
        async with pool.lease() as http:
            response = await http.get("http://localhost:3500/v1.0/healthz")
        await pool.aclose()
    """

    def __init__(
        self,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        keepalive_expiry: float = DEFAULT_KEEPALIVE_EXPIRY,
        connection_lease_timeout: float = DEFAULT_CONNECTION_LEASE_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        clock=time.monotonic,
    ):
        """Initialize the pool.

        Args:
            max_connections: Maximum concurrent connections.
            keepalive_expiry: Seconds an idle connection is kept alive.
            connection_lease_timeout: Seconds after which the underlying
                client is replaced for new requests.
            transport: Optional httpx transport (used by tests).
            clock: Monotonic clock, injectable for tests.
        """
        self.max_connections = max_connections
        self.keepalive_expiry = keepalive_expiry
        self.connection_lease_timeout = connection_lease_timeout
        self._limits = httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=max_connections,
            keepalive_expiry=keepalive_expiry,
        )
        self._transport = transport
        self._clock = clock
        self._current: _Generation | None = None
        self._retired: list[_Generation] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _new_generation(self) -> _Generation:
        client = httpx.AsyncClient(
            limits=self._limits,
            headers={"User-Agent": USER_AGENT},
            transport=self._transport,
        )
        return _Generation(client, self._clock())

    def _acquire(self) -> _Generation:
        if self._closed:
            raise RuntimeError("ConnectionPool is closed")

        current = self._current
        if current is not None and (
            self._clock() - current.created_at >= self.connection_lease_timeout
        ):
            logger.debug(
                f"Recycling Dapr connections after {self.connection_lease_timeout:.0f}s lease"
            )
            self._retired.append(current)
            current = None

        if current is None:
            current = self._new_generation()
            self._current = current

        current.in_flight += 1
        return current

    def _release(self, generation: _Generation) -> list[_Generation]:
        generation.in_flight -= 1
        return self._take_drained()

    def _take_drained(self) -> list[_Generation]:
        drained = [g for g in self._retired if g.in_flight == 0]
        self._retired = [g for g in self._retired if g.in_flight > 0]
        return drained

    @staticmethod
    async def _close_all(generations: list[_Generation]) -> None:
        for generation in generations:
            await generation.client.aclose()

    @asynccontextmanager
    async def lease(self) -> AsyncIterator[httpx.AsyncClient]:
        """Borrow the current client for the duration of one request.

        Retired clients are closed on the way out, once their last
        request has finished.
        """
        generation = self._acquire()
        try:
            yield generation.client
        finally:
            drained = self._release(generation)
            if drained:
                await asyncio.shield(self._close_all(drained))

    async def aclose(self) -> None:
        """Close every client owned by the pool."""
        self._closed = True
        generations = self._retired
        if self._current is not None:
            generations.append(self._current)
        self._current = None
        self._retired = []
        await self._close_all(generations)


# Process-wide default pool
_shared_pool: ConnectionPool | None = None


def get_shared_pool() -> ConnectionPool:
    """Get or create the process-wide connection pool.

    Returns:
        The shared ConnectionPool instance.
    """
    global _shared_pool
    if _shared_pool is None or _shared_pool.closed:
        _shared_pool = ConnectionPool()
    return _shared_pool


async def close_shared_pool() -> None:
    """Dispose the process-wide pool. Call once at application shutdown."""
    global _shared_pool
    if _shared_pool is not None:
        await _shared_pool.aclose()
        _shared_pool = None
