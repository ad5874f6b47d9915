"""Storage backends for the link registry."""

from .base import RegistryStorageBase
from .memory import InMemoryStorage
from .file import FileStorage
from .redis_store import RedisStorage

__all__ = ["RegistryStorageBase", "InMemoryStorage", "FileStorage", "RedisStorage"]
