"""Background-refreshed cache of the readiness probe."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from src.models.health import HealthSnapshot
from src.services.database import ConnectionPool
from src.services.readiness import probe_readiness
from src.utils.constants import DEFAULT_HEALTH_CACHE_VALIDITY_MS
from src.utils.rwlock import ReadWriteLock

logger = logging.getLogger("health-cache")

Probe = Callable[[ConnectionPool], Awaitable[HealthSnapshot]]


class HealthCache:
    """Readiness snapshot cache with a single background producer.

    One asyncio task sleeps until the next tick of the validity period, runs
    the probe, and publishes the result under the write lock. Readers take a
    non-blocking read lock and get ``None`` ("not ready") when the writer holds
    it or before the first snapshot exists. A snapshot may be up to one
    validity period old.

    Construct one instance at startup and pass it to every consumer.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        version: str,
        validity_period_ms: Optional[int] = None,
        caller: str = "pg-provision",
        probe: Optional[Probe] = None
    ):
        """Initialize the cache.

        Args:
            pool: Pool to probe.
            version: Service version copied into every snapshot.
            validity_period_ms: Refresh period, 1000 ms when unset.
            caller: Identifier written by the write probe.
            probe: Replacement probe callable, mainly for tests.
        """
        if not validity_period_ms or validity_period_ms <= 0:
            validity_period_ms = DEFAULT_HEALTH_CACHE_VALIDITY_MS
        self.pool = pool
        self.version = version
        self.caller = caller
        self.validity_period_ms = validity_period_ms
        self._probe = probe or self._default_probe
        self._lock = ReadWriteLock()
        self._snapshot: Optional[HealthSnapshot] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def validity_period(self) -> float:
        """Validity period in seconds."""
        return self.validity_period_ms / 1000

    async def _default_probe(self, pool: ConnectionPool) -> HealthSnapshot:
        return await probe_readiness(pool, self.version, caller=self.caller)

    def start(self) -> asyncio.Task:
        """Spawn the refresh task; later calls return the running task."""
        if self._task is not None and not self._task.done():
            return self._task
        self._task = asyncio.get_running_loop().create_task(
            self._refresh_loop(), name="health-cache-refresh"
        )
        logger.info("Health cache refresh started (every %d ms)", self.validity_period_ms)
        return self._task

    async def stop(self) -> None:
        """Cancel the refresh task and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Health cache refresh stopped")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _refresh_loop(self) -> None:
        loop = asyncio.get_running_loop()
        period = self.validity_period
        next_tick = loop.time() + period
        while True:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            try:
                snapshot = await self._probe(self.pool)
            except Exception:
                logger.exception("Health probe raised; keeping the previous snapshot")
            else:
                self.publish(snapshot)

            next_tick += period
            now = loop.time()
            if next_tick <= now:
                # Probe overran one or more ticks; skip them
                missed = int((now - next_tick) // period) + 1
                next_tick += missed * period
                logger.debug("Health probe overran the validity period, skipped %d tick(s)", missed)

    def publish(self, snapshot: HealthSnapshot) -> None:
        """Replace the cached snapshot under the write lock."""
        with self._lock.write_locked():
            self._snapshot = snapshot
        logger.debug("Published health snapshot: %s", snapshot.status.value)

    def get(self) -> Optional[HealthSnapshot]:
        """Return the cached snapshot without blocking.

        Returns:
            The latest snapshot, or None when not ready.
        """
        if not self._lock.try_acquire_read():
            return None
        try:
            return self._snapshot
        finally:
            self._lock.release_read()
