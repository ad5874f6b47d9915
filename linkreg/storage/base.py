"""Abstract base class for registry storage backends."""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..errors import PersistenceError


class RegistryStorageBase(ABC):
    """Durable key-value blob holding the full registry snapshot.

    The blob is a JSON list of record dictionaries. It is written in full
    on every mutation and read in full once at startup.
    """

    @abstractmethod
    async def read_blob(self) -> Optional[str]:
        """Read the raw snapshot.

        Returns:
            The stored JSON text, or None if nothing was stored yet
        """
        pass

    @abstractmethod
    async def write_blob(self, blob: str) -> None:
        """Replace the stored snapshot.

        Args:
            blob: JSON text to store
        """
        pass

    async def load(self) -> List[Dict[str, Any]]:
        """Load the record dictionaries from storage.

        Raises:
            PersistenceError: If the stored snapshot is not a JSON list
        """
        blob = await self.read_blob()
        if not blob:
            return []

        try:
            data = json.loads(blob)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Stored registry is not valid JSON: {e}") from e

        if not isinstance(data, list):
            raise PersistenceError("Stored registry must be a JSON list")

        return data

    async def save(self, records: List[Dict[str, Any]]) -> None:
        """Serialize and store the record dictionaries."""
        await self.write_blob(json.dumps(records))

    async def close(self) -> None:
        """Close storage connections."""
        pass

    async def health_check(self) -> bool:
        """Check if storage is reachable.

        Returns:
            True if healthy, False otherwise
        """
        return True
