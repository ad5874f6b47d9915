"""Link registry: short code allocation, expiry and the click ledger."""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from .errors import (
    CodeSpaceExhaustedError,
    DuplicateCodeError,
    PersistenceError,
    ValidationError,
)
from .models import ClickEvent, ClickStatus, LinkRecord
from .shortcode import ShortCodeGenerator
from .storage.base import RegistryStorageBase
from .common.validators import (
    is_reserved_word,
    is_valid_short_code,
    is_valid_url,
    is_valid_validity_minutes,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LinkRegistry:
    """Authoritative collection of link records plus its persistence.

    Construct one per process, ``await load()`` it, then pass it to the
    callers that need it. Mutations are serialized by a lock and are
    copy-on-write: the new snapshot is persisted before it replaces the
    in-memory state, so a failed write changes nothing in memory.
    """

    def __init__(
        self,
        storage: RegistryStorageBase,
        short_code_generator: Optional[ShortCodeGenerator] = None,
        logger: Optional[logging.Logger] = None,
        base_url: str = "http://localhost:9200",
        path_prefix: str = "",
        enable_custom_codes: bool = True,
        max_collision_retries: int = 10,
        default_validity_minutes: int = 30,
        max_validity_minutes: int = 10080,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize link registry.

        Args:
            storage: Durable snapshot backend
            short_code_generator: Optional short code generator
            logger: Optional logger
            base_url: Origin used to build short URLs
            path_prefix: Optional path prefix for short URLs
            enable_custom_codes: Whether to allow custom short codes
            max_collision_retries: Attempts before giving up on generation
            default_validity_minutes: Window used when none is given
            max_validity_minutes: Longest accepted window
            clock: Returns the current aware datetime (defaults to UTC now)
        """
        if max_collision_retries < 1:
            raise ValueError("max_collision_retries must be at least 1")

        self.storage = storage
        self.generator = short_code_generator or ShortCodeGenerator()
        self.logger = logger or logging.getLogger(__name__)
        self.base_url = base_url
        self.path_prefix = path_prefix
        self.enable_custom_codes = enable_custom_codes
        self.max_collision_retries = max_collision_retries
        self.default_validity_minutes = default_validity_minutes
        self.max_validity_minutes = max_validity_minutes
        self.clock = clock or utc_now

        # Most recently created first
        self._records: List[LinkRecord] = []
        self._by_code: Dict[str, LinkRecord] = {}
        self._lock = asyncio.Lock()
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    def __len__(self) -> int:
        return len(self._records)

    async def load(self) -> None:
        """Load the registry from storage. Call once before use.

        Raises:
            PersistenceError: If stored data is malformed or inconsistent
        """
        async with self._lock:
            raw_records = await self.storage.load()

            records: List[LinkRecord] = []
            by_code: Dict[str, LinkRecord] = {}
            for raw in raw_records:
                try:
                    record = LinkRecord.from_dict(raw)
                except (KeyError, TypeError, ValueError) as e:
                    raise PersistenceError(f"Malformed link record in storage: {e}") from e

                if not self.generator.is_valid_format(record.short_code):
                    raise PersistenceError(
                        f"Stored short code '{record.short_code}' is not normalized"
                    )
                if record.expires_at <= record.created_at:
                    raise PersistenceError(
                        f"Stored link '{record.short_code}' expires before it was created"
                    )
                if record.short_code in by_code:
                    raise PersistenceError(
                        f"Duplicate short code '{record.short_code}' in storage"
                    )
                records.append(record)
                by_code[record.short_code] = record

            self._records = records
            self._by_code = by_code
            self._loaded = True

        self.logger.info(f"Loaded {len(records)} links from storage")

    async def create(
        self,
        original_url: str,
        custom_code: Optional[str] = None,
        validity_minutes: Optional[int] = None,
    ) -> LinkRecord:
        """Create a new short link.

        Args:
            original_url: The original long URL
            custom_code: Optional custom short code
            validity_minutes: Validity window (default from configuration)

        Returns:
            The new record, with an empty click list

        Raises:
            ValidationError: If the URL, window or custom code is malformed
            DuplicateCodeError: If the custom code is already in use
            CodeSpaceExhaustedError: If no free code was found
            PersistenceError: If the snapshot could not be written
        """
        is_valid, error = is_valid_url(original_url)
        if not is_valid:
            raise ValidationError(f"Invalid URL: {error}")

        if validity_minutes is None:
            validity_minutes = self.default_validity_minutes
        is_valid, error = is_valid_validity_minutes(validity_minutes, self.max_validity_minutes)
        if not is_valid:
            raise ValidationError(f"Invalid validity: {error}")

        if custom_code is not None and custom_code.strip():
            if not self.enable_custom_codes:
                raise ValidationError("Custom short codes are not enabled")

            custom_code = self.generator.normalize(custom_code)
            is_valid, error = is_valid_short_code(custom_code)
            if not is_valid:
                raise ValidationError(f"Invalid short code: {error}")
        else:
            custom_code = None

        async with self._lock:
            if custom_code is not None:
                if custom_code in self._by_code:
                    raise DuplicateCodeError(custom_code)
                short_code = custom_code
            else:
                short_code = self._generate_unique_short_code()

            created_at = self.clock()
            record = LinkRecord(
                id=str(uuid.uuid4()),
                original_url=original_url,
                short_code=short_code,
                short_url=self.short_url_for(short_code),
                created_at=created_at,
                expires_at=created_at + timedelta(minutes=validity_minutes),
            )

            await self._commit([record] + self._records)

        self.logger.info(
            f"Created short link: {short_code} -> {original_url} "
            f"(expires {record.expires_at.isoformat()})"
        )
        return record

    def short_url_for(self, short_code: str) -> str:
        """Public URL of ``short_code``: ``<base_url>[/<path_prefix>]/<code>``."""
        base = self.base_url.rstrip("/")
        prefix = self.path_prefix.strip("/")
        return f"{base}/{prefix}/{short_code}" if prefix else f"{base}/{short_code}"

    def resolve(self, short_code: str) -> Optional[LinkRecord]:
        """Look up a record by short code. Does not check expiry.

        Args:
            short_code: The short code to look up

        Returns:
            The record or None if not found
        """
        if not short_code:
            return None
        return self._by_code.get(self.generator.normalize(short_code))

    def get(self, link_id: str) -> Optional[LinkRecord]:
        """Look up a record by id."""
        for record in self._records:
            if record.id == link_id:
                return record
        return None

    def is_expired(self, record: LinkRecord) -> bool:
        """Whether ``record`` is expired according to the registry clock."""
        return record.is_expired(self.clock())

    async def try_record_click(
        self,
        short_code: str,
        source: str = "direct",
        user_agent: Optional[str] = None,
        referrer: Optional[str] = None,
    ) -> ClickStatus:
        """Append a click to an active link.

        Args:
            short_code: The short code that was accessed
            source: Access channel tag (e.g. "direct", "interface")
            user_agent: Optional client user agent
            referrer: Optional referring page

        Returns:
            RECORDED, NOT_FOUND or EXPIRED. Only RECORDED changes state.

        Raises:
            PersistenceError: If the snapshot could not be written
        """
        code = self.generator.normalize(short_code) if short_code else ""

        async with self._lock:
            record = self._by_code.get(code)
            if record is None:
                self.logger.warning(f"Click on unknown short code: {short_code}")
                return ClickStatus.NOT_FOUND

            now = self.clock()
            if record.is_expired(now):
                self.logger.warning(f"Click on expired short code: {code}")
                return ClickStatus.EXPIRED

            click = ClickEvent(
                id=str(uuid.uuid4()),
                timestamp=now,
                source=source,
                user_agent=user_agent,
                referrer=referrer,
            )
            updated = record.with_click(click)
            await self._commit([updated if r is record else r for r in self._records])

        self.logger.info(f"Recorded {source} click on {code} ({updated.click_count} total)")
        return ClickStatus.RECORDED

    async def record_click(
        self,
        short_code: str,
        source: str = "direct",
        user_agent: Optional[str] = None,
        referrer: Optional[str] = None,
    ) -> bool:
        """Append a click to an active link.

        Returns:
            True if recorded, False if the code is unknown or expired
        """
        status = await self.try_record_click(short_code, source, user_agent, referrer)
        return status is ClickStatus.RECORDED

    async def delete(self, link_id: str) -> None:
        """Remove the record with ``link_id``. Absent ids are a no-op.

        Raises:
            PersistenceError: If the snapshot could not be written
        """
        async with self._lock:
            remaining = [r for r in self._records if r.id != link_id]
            if len(remaining) == len(self._records):
                self.logger.debug(f"Delete of unknown link id {link_id} ignored")
                return

            await self._commit(remaining)

        self.logger.info(f"Deleted link {link_id}")

    def list_links(self) -> List[LinkRecord]:
        """Snapshot of all records, most recently created first."""
        return sorted(self._records, key=lambda r: r.created_at, reverse=True)

    async def health_check(self) -> Dict[str, bool]:
        """Perform health check.

        Returns:
            Dictionary with health status
        """
        storage_healthy = await self.storage.health_check()
        return {
            "storage": storage_healthy,
            "loaded": self._loaded,
            "overall": storage_healthy and self._loaded,
        }

    async def close(self) -> None:
        """Close storage connections."""
        await self.storage.close()

    def _is_code_available(self, code: str) -> bool:
        return code not in self._by_code and not is_reserved_word(code)

    def _generate_unique_short_code(self) -> str:
        """Draw random codes until a free one turns up.

        Raises:
            CodeSpaceExhaustedError: If every attempt collided
        """
        for attempt in range(self.max_collision_retries):
            code = self.generator.generate_random()
            if self._is_code_available(code):
                if attempt:
                    self.logger.debug(f"Generated code after {attempt + 1} attempts: {code}")
                return code

        self.logger.error(
            f"No free short code after {self.max_collision_retries} attempts "
            f"({len(self._by_code)} of {self.generator.code_space_size()} codes in use)"
        )
        raise CodeSpaceExhaustedError(self.max_collision_retries)

    async def _commit(self, records: List[LinkRecord]) -> None:
        """Persist ``records`` and make them the current state.

        Must be called with the lock held.
        """
        await self.storage.save([r.to_dict() for r in records])
        self._records = records
        self._by_code = {r.short_code: r for r in records}
