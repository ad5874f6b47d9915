"""JSON file storage backend."""

import asyncio
import logging
import os
import tempfile
from typing import Optional

from .base import RegistryStorageBase
from ..errors import PersistenceError


class FileStorage(RegistryStorageBase):
    """Stores the registry snapshot as a single JSON file."""

    def __init__(self, path: str, logger: Optional[logging.Logger] = None):
        """Initialize file storage.

        Args:
            path: Path of the JSON file (parent directories are created)
            logger: Optional logger instance
        """
        self.path = os.path.abspath(path)
        self.logger = logger or logging.getLogger(__name__)

    def _read(self) -> Optional[str]:
        if not os.path.exists(self.path):
            return None
        with open(self.path, "r", encoding="utf-8") as f:
            return f.read()

    def _write(self, blob: str) -> None:
        directory = os.path.dirname(self.path)
        os.makedirs(directory, exist_ok=True)

        # Write to a sibling temp file, then swap it in so readers never
        # see a half-written snapshot.
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".links-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(blob)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    async def read_blob(self) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._read)
        except (OSError, UnicodeDecodeError) as e:
            self.logger.error(f"Failed to read {self.path}: {e}")
            raise PersistenceError(f"Failed to read registry file: {e}") from e

    async def write_blob(self, blob: str) -> None:
        try:
            await asyncio.to_thread(self._write, blob)
        except OSError as e:
            self.logger.error(f"Failed to write {self.path}: {e}")
            raise PersistenceError(f"Failed to write registry file: {e}") from e
        self.logger.debug(f"Wrote {len(blob)} bytes to {self.path}")

    async def health_check(self) -> bool:
        # Missing directories are created on first write, so check the
        # nearest existing ancestor.
        target = self.path
        while not os.path.exists(target):
            target = os.path.dirname(target)
        return os.access(target, os.W_OK)
