"""In-memory registry of managed pools, keyed by pool id."""

from __future__ import annotations

import threading
import uuid
from typing import Any

import structlog

from managed_pool.config import DEFAULT_POOL_LIMITS, PoolLimits
from managed_pool.models import ManagedPoolParams
from managed_pool.pool import Clock, ManagedPool, system_clock

logger = structlog.get_logger()


class PoolNotFoundError(KeyError):
    """No pool is registered under the requested id."""


class PoolRegistry:
    """Holds independent pools.

    Pools share no state; the registry lock only guards the id map. Each
    pool serializes its own operations.
    """

    def __init__(self, clock: Clock = system_clock, limits: PoolLimits = DEFAULT_POOL_LIMITS) -> None:
        self._clock = clock
        self._limits = limits
        self._pools: dict[str, ManagedPool] = {}
        self._lock = threading.Lock()

    def create(self, params: ManagedPoolParams | dict[str, Any]) -> str:
        """Create a pool and return its id."""
        pool = ManagedPool.create(params, clock=self._clock, limits=self._limits)
        pool_id = uuid.uuid4().hex
        with self._lock:
            self._pools[pool_id] = pool
        logger.info("pool_registered", pool_id=pool_id, num_tokens=len(pool.tokens))
        return pool_id

    def get(self, pool_id: str) -> ManagedPool:
        with self._lock:
            pool = self._pools.get(pool_id)
        if pool is None:
            raise PoolNotFoundError(pool_id)
        return pool

    def remove(self, pool_id: str) -> None:
        with self._lock:
            if self._pools.pop(pool_id, None) is None:
                raise PoolNotFoundError(pool_id)

    @property
    def pool_count(self) -> int:
        with self._lock:
            return len(self._pools)

    def __contains__(self, pool_id: object) -> bool:
        with self._lock:
            return pool_id in self._pools


_default_registry: PoolRegistry | None = None


def get_default_registry() -> PoolRegistry:
    """Process-wide registry used by the API."""
    global _default_registry
    if _default_registry is None:
        _default_registry = PoolRegistry()
    return _default_registry
