"""Adapters — bindings for the external tools the installer drives.

Public re-exports for convenient access.
"""

from fts_installer.adapters.base import Adapter, ExecutionContext
from fts_installer.adapters.mock import MockAdapter
from fts_installer.adapters.registry import AdapterRegistry, default_registry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
    "default_registry",
]
