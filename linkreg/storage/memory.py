"""In-process storage backend, used for tests and throwaway sessions."""

from typing import Optional

from .base import RegistryStorageBase


class InMemoryStorage(RegistryStorageBase):
    """Keeps the serialized snapshot in memory.

    The snapshot still goes through JSON so that reloads exercise the same
    encoding as the durable backends.
    """

    def __init__(self, initial_blob: Optional[str] = None):
        self.blob = initial_blob
        self.write_count = 0

    async def read_blob(self) -> Optional[str]:
        return self.blob

    async def write_blob(self, blob: str) -> None:
        self.blob = blob
        self.write_count += 1
