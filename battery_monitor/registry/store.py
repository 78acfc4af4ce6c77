"""
Registry persistence interface.

The scheduler loads registered devices once at startup and saves the
whole registry as JSON-like records after every change.
"""
import copy
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class RegistryStore(ABC):
    """Loads and saves registered device records."""

    @abstractmethod
    async def load(self) -> List[Dict[str, Any]]:
        """Return stored records, or an empty list if none exist."""
        ...

    @abstractmethod
    async def save(self, records: List[Dict[str, Any]]) -> None:
        """Replace stored records."""
        ...


class InMemoryRegistryStore(RegistryStore):
    """Store that keeps records in memory for the process lifetime."""

    def __init__(self, records: Optional[List[Dict[str, Any]]] = None):
        self._records: List[Dict[str, Any]] = copy.deepcopy(records or [])
        self.save_count = 0

    @property
    def records(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._records)

    async def load(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._records)

    async def save(self, records: List[Dict[str, Any]]) -> None:
        self._records = copy.deepcopy(records)
        self.save_count += 1
