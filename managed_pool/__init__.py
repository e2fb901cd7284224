"""Managed weighted pool - Python implementation."""

from managed_pool.pool import ManagedPool
from managed_pool.registry import PoolRegistry, get_default_registry

__version__ = "0.1.0"
__all__ = ["ManagedPool", "PoolRegistry", "get_default_registry", "__version__"]
