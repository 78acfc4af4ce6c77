"""
Registry module.

Owns the registered devices, their refresh cycles and persistence.
"""
from .store import InMemoryRegistryStore, RegistryStore
from .scheduler import RegistryScheduler

__all__ = [
    "RegistryStore",
    "InMemoryRegistryStore",
    "RegistryScheduler",
]
