"""Tests for the link registry."""

import asyncio
from datetime import timedelta

import pytest

from conftest import ScriptedGenerator
from linkreg.errors import (
    CodeSpaceExhaustedError,
    DuplicateCodeError,
    PersistenceError,
    ValidationError,
)
from linkreg.models import ClickStatus
from linkreg.registry import LinkRegistry
from linkreg.storage import InMemoryStorage


class FailingStorage(InMemoryStorage):
    """Memory storage whose writes fail once ``fail`` is set."""

    def __init__(self):
        super().__init__()
        self.fail = False

    async def write_blob(self, blob: str) -> None:
        if self.fail:
            raise PersistenceError("disk full")
        await super().write_blob(blob)


class TestCreate:
    """Test link creation."""

    @pytest.mark.asyncio
    async def test_create_short_link(self, registry, storage, clock, sample_urls):
        """Test creating a link with a generated code."""
        record = await registry.create(sample_urls[0], validity_minutes=30)

        assert record.original_url == sample_urls[0]
        assert len(record.short_code) == 6
        assert record.short_code.isalnum() and record.short_code == record.short_code.lower()
        assert record.short_url == f"http://testserver/{record.short_code}"
        assert record.created_at == clock.now
        assert record.clicks == ()
        assert registry.resolve(record.short_code) == record
        assert storage.write_count == 1

    @pytest.mark.asyncio
    async def test_expires_at_is_exact(self, registry):
        """Test expiry is created_at plus the window, to the microsecond."""
        record = await registry.create("https://example.com", validity_minutes=90)

        assert record.expires_at - record.created_at == timedelta(minutes=90)
        assert record.expires_at > record.created_at

    @pytest.mark.asyncio
    async def test_default_validity(self, registry):
        """Test the configured default window applies when none is given."""
        record = await registry.create("https://example.com")

        assert record.expires_at - record.created_at == timedelta(minutes=30)

    @pytest.mark.asyncio
    async def test_create_with_custom_code(self, registry, sample_urls):
        """Test creating with custom code."""
        record = await registry.create(sample_urls[0], custom_code="promo1", validity_minutes=5)

        assert record.short_code == "promo1"
        assert record.short_url == "http://testserver/promo1"

    @pytest.mark.asyncio
    async def test_single_character_custom_code(self, registry):
        """Test custom codes only need one character."""
        record = await registry.create("https://example.com", custom_code="Q")

        assert record.short_code == "q"
        assert registry.resolve("q") == record

    @pytest.mark.asyncio
    async def test_custom_code_is_case_normalized(self, registry, sample_urls):
        """Test custom codes are stored and looked up in lowercase."""
        record = await registry.create(sample_urls[0], custom_code="  PROMO1 ")

        assert record.short_code == "promo1"
        assert registry.resolve("Promo1") == record

        with pytest.raises(DuplicateCodeError):
            await registry.create(sample_urls[1], custom_code="promo1")

    @pytest.mark.asyncio
    async def test_duplicate_custom_code(self, registry, storage, sample_urls):
        """Test duplicate custom code rejection leaves the registry unchanged."""
        await registry.create(sample_urls[0], custom_code="promo1", validity_minutes=10)

        with pytest.raises(DuplicateCodeError, match="already exists"):
            await registry.create(sample_urls[1], custom_code="promo1", validity_minutes=10)

        matching = [r for r in registry.list_links() if r.short_code == "promo1"]
        assert len(matching) == 1
        assert matching[0].original_url == sample_urls[0]
        assert storage.write_count == 1

    @pytest.mark.asyncio
    async def test_blank_custom_code_generates(self, registry):
        """Test an empty custom code falls back to generation."""
        record = await registry.create("https://example.com", custom_code="   ")

        assert len(record.short_code) == 6

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", [
        "",
        "not-a-url",
        "ftp://example.com/file",
        "https://",
        "https://example.com:notaport/",
        "https://example.com/" + "a" * 2048,
    ])
    async def test_invalid_url(self, registry, storage, url):
        """Test invalid URL rejection."""
        with pytest.raises(ValidationError, match="Invalid URL"):
            await registry.create(url, validity_minutes=10)

        assert len(registry) == 0
        assert storage.write_count == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("minutes", [0, -5, 10081, 1.5, "30", True])
    async def test_invalid_validity(self, registry, storage, minutes):
        """Test non-positive, oversized and non-integer windows are rejected."""
        with pytest.raises(ValidationError, match="Invalid validity"):
            await registry.create("https://example.com", validity_minutes=minutes)

        assert len(registry) == 0
        assert storage.write_count == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", ["ab_c", "a" * 21, "bad-code", "has space", "api", "Health"])
    async def test_invalid_custom_code(self, registry, storage, code):
        """Test malformed or reserved custom codes are rejected."""
        with pytest.raises(ValidationError, match="Invalid short code"):
            await registry.create("https://example.com", custom_code=code)

        assert len(registry) == 0
        assert storage.write_count == 0

    @pytest.mark.asyncio
    async def test_custom_codes_disabled(self, storage, clock):
        """Test custom codes can be switched off."""
        registry = LinkRegistry(storage=storage, enable_custom_codes=False, clock=clock)
        await registry.load()

        with pytest.raises(ValidationError, match="not enabled"):
            await registry.create("https://example.com", custom_code="promo1")

    @pytest.mark.asyncio
    async def test_generated_code_retries_on_collision(self, storage, clock):
        """Test a colliding or reserved random code is redrawn."""
        generator = ScriptedGenerator(["taken1", "taken1", "health", "fresh1"])
        registry = LinkRegistry(storage=storage, short_code_generator=generator, clock=clock)
        await registry.load()
        await registry.create("https://example.com/a", custom_code="taken1")

        record = await registry.create("https://example.com/b")

        assert record.short_code == "fresh1"
        assert generator.calls == 4
        codes = [r.short_code for r in registry.list_links()]
        assert len(codes) == len(set(codes))

    @pytest.mark.asyncio
    async def test_code_space_exhausted(self, storage, clock):
        """Test generation gives up after the retry budget."""
        generator = ScriptedGenerator(["taken1"])
        registry = LinkRegistry(
            storage=storage,
            short_code_generator=generator,
            max_collision_retries=3,
            clock=clock,
        )
        await registry.load()
        original = await registry.create("https://example.com/a", custom_code="taken1")

        with pytest.raises(CodeSpaceExhaustedError):
            await registry.create("https://example.com/b")

        assert generator.calls == 3
        assert registry.list_links() == [original]
        assert storage.write_count == 1

    @pytest.mark.asyncio
    async def test_many_generated_codes_are_unique(self, registry):
        """Test generated codes never collide with existing ones."""
        records = [await registry.create(f"https://example.com/{i}") for i in range(200)]

        codes = {r.short_code for r in records}
        assert len(codes) == 200

    @pytest.mark.asyncio
    async def test_concurrent_custom_code_claims(self, registry, sample_urls):
        """Test only one of many simultaneous claims on a code wins."""
        results = await asyncio.gather(
            *[registry.create(sample_urls[0], custom_code="promo1") for _ in range(20)],
            return_exceptions=True,
        )

        created = [r for r in results if not isinstance(r, Exception)]
        duplicates = [r for r in results if isinstance(r, DuplicateCodeError)]
        assert len(created) == 1
        assert len(duplicates) == 19
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_failed_write_leaves_memory_unchanged(self, clock):
        """Test a persistence failure surfaces and does not half-apply."""
        storage = FailingStorage()
        registry = LinkRegistry(storage=storage, clock=clock)
        await registry.load()
        await registry.create("https://example.com/a", custom_code="keep1")

        storage.fail = True
        with pytest.raises(PersistenceError):
            await registry.create("https://example.com/b", custom_code="lost1")

        assert registry.resolve("lost1") is None
        assert len(registry) == 1


class TestResolve:
    """Test lookups."""

    @pytest.mark.asyncio
    async def test_resolve_unknown(self, registry):
        """Test resolving an unknown code."""
        assert registry.resolve("nothere") is None
        assert registry.resolve("") is None

    @pytest.mark.asyncio
    async def test_resolve_does_not_mutate(self, registry, storage):
        """Test resolve has no side effects, even on expired links."""
        record = await registry.create("https://example.com", validity_minutes=1)
        registry.clock.advance(minutes=5)

        assert registry.resolve(record.short_code) == record
        assert registry.is_expired(record)
        assert storage.write_count == 1

    @pytest.mark.asyncio
    async def test_get_by_id(self, registry):
        """Test lookup by id."""
        record = await registry.create("https://example.com")

        assert registry.get(record.id) == record
        assert registry.get("missing") is None


class TestRecordClick:
    """Test the click ledger."""

    @pytest.mark.asyncio
    async def test_record_click(self, registry, storage, clock):
        """Test a click on an active link appends exactly one event."""
        record = await registry.create("https://example.com", validity_minutes=10)
        call_time = clock()
        clock.advance(seconds=1)

        assert await registry.record_click(
            record.short_code, source="direct", user_agent="pytest", referrer="https://ref.example"
        )

        updated = registry.resolve(record.short_code)
        assert updated.click_count == record.click_count + 1
        click = updated.clicks[-1]
        assert click.timestamp >= call_time
        assert click.source == "direct"
        assert click.user_agent == "pytest"
        assert click.referrer == "https://ref.example"
        assert storage.write_count == 2

    @pytest.mark.asyncio
    async def test_clicks_append_in_order(self, registry, clock):
        """Test clicks are kept in chronological order."""
        record = await registry.create("https://example.com", validity_minutes=10)
        for source in ("direct", "interface", "direct"):
            clock.advance(seconds=10)
            await registry.record_click(record.short_code, source=source)

        clicks = registry.resolve(record.short_code).clicks
        assert [c.source for c in clicks] == ["direct", "interface", "direct"]
        assert [c.timestamp for c in clicks] == sorted(c.timestamp for c in clicks)
        assert len({c.id for c in clicks}) == 3

    @pytest.mark.asyncio
    async def test_click_metadata_optional(self, registry):
        """Test clicks without user agent or referrer are valid."""
        record = await registry.create("https://example.com")

        assert await registry.record_click(record.short_code)
        click = registry.resolve(record.short_code).clicks[0]
        assert click.user_agent is None
        assert click.referrer is None

    @pytest.mark.asyncio
    async def test_click_unknown_code(self, registry, storage):
        """Test a click on a missing code is a no-op."""
        await registry.create("https://example.com")
        before = registry.list_links()

        assert await registry.record_click("nothere") is False
        assert await registry.try_record_click("nothere") is ClickStatus.NOT_FOUND
        assert registry.list_links() == before
        assert storage.write_count == 1

    @pytest.mark.asyncio
    async def test_expiry_scenario(self, registry, storage, clock):
        """Test a one minute link accepts a click now and refuses one after 60s."""
        record = await registry.create("https://example.com/page", validity_minutes=1)

        assert await registry.record_click(record.short_code)

        clock.advance(seconds=61)
        assert await registry.record_click(record.short_code) is False
        assert await registry.try_record_click(record.short_code) is ClickStatus.EXPIRED

        assert registry.resolve(record.short_code).click_count == 1
        assert storage.write_count == 2

    @pytest.mark.asyncio
    async def test_click_at_expiry_instant(self, registry, clock):
        """Test a link is still active at exactly expires_at."""
        record = await registry.create("https://example.com", validity_minutes=1)
        clock.advance(seconds=60)

        assert await registry.try_record_click(record.short_code) is ClickStatus.RECORDED

    @pytest.mark.asyncio
    async def test_concurrent_clicks(self, registry):
        """Test simultaneous clicks are all kept."""
        record = await registry.create("https://example.com")

        results = await asyncio.gather(
            *[registry.record_click(record.short_code) for _ in range(50)]
        )

        assert all(results)
        assert registry.resolve(record.short_code).click_count == 50


class TestDeleteAndList:
    """Test removal and listing."""

    @pytest.mark.asyncio
    async def test_delete(self, registry, storage):
        """Test delete removes the record and is idempotent."""
        record = await registry.create("https://example.com", custom_code="gone1")

        await registry.delete(record.id)
        assert registry.resolve("gone1") is None
        assert registry.get(record.id) is None
        assert storage.write_count == 2

        await registry.delete(record.id)
        assert storage.write_count == 2

    @pytest.mark.asyncio
    async def test_click_after_delete(self, registry):
        """Test a deleted code no longer accepts clicks."""
        record = await registry.create("https://example.com")
        await registry.delete(record.id)

        assert await registry.try_record_click(record.short_code) is ClickStatus.NOT_FOUND

    @pytest.mark.asyncio
    async def test_list_most_recent_first(self, registry, clock, sample_urls):
        """Test list ordering."""
        created = []
        for url in sample_urls:
            created.append(await registry.create(url))
            clock.advance(minutes=1)

        assert registry.list_links() == list(reversed(created))

    @pytest.mark.asyncio
    async def test_list_same_instant_newest_first(self, registry, sample_urls):
        """Test records created at the same instant list newest insertion first."""
        first = await registry.create(sample_urls[0])
        second = await registry.create(sample_urls[1])

        assert registry.list_links() == [second, first]

    @pytest.mark.asyncio
    async def test_list_is_snapshot(self, registry):
        """Test a listed snapshot does not change under later mutations."""
        record = await registry.create("https://example.com")
        snapshot = registry.list_links()

        await registry.record_click(record.short_code)
        await registry.create("https://example.com/other")

        assert snapshot == [record]
        assert snapshot[0].click_count == 0
        assert registry.list_links() == registry.list_links()

    @pytest.mark.asyncio
    async def test_expired_code_not_reused(self, storage, clock):
        """Test an expired but present record keeps its code reserved."""
        generator = ScriptedGenerator(["old001", "old001", "new001"])
        registry = LinkRegistry(storage=storage, short_code_generator=generator, clock=clock)
        await registry.load()
        old = await registry.create("https://example.com/old", validity_minutes=1)
        clock.advance(minutes=10)

        fresh = await registry.create("https://example.com/new")

        assert old.short_code == "old001"
        assert fresh.short_code == "new001"
        with pytest.raises(DuplicateCodeError):
            await registry.create("https://example.com/x", custom_code="old001")


class TestPersistence:
    """Test load and reload."""

    @pytest.mark.asyncio
    async def test_round_trip(self, registry, storage, clock, logger):
        """Test create, click, reload yields equal records."""
        first = await registry.create("https://example.com/a", validity_minutes=15)
        clock.advance(seconds=30)
        await registry.record_click(first.short_code, user_agent="ua", referrer=None)
        clock.advance(seconds=30)
        await registry.create("https://example.com/b", custom_code="second")

        reloaded = LinkRegistry(storage=storage, logger=logger, clock=clock)
        await reloaded.load()

        assert reloaded.list_links() == registry.list_links()
        restored = reloaded.resolve(first.short_code)
        assert restored.created_at == first.created_at
        assert restored.expires_at == first.expires_at
        assert restored.clicks == registry.resolve(first.short_code).clicks

    @pytest.mark.asyncio
    async def test_load_empty(self, clock):
        """Test loading from empty storage."""
        registry = LinkRegistry(storage=InMemoryStorage(), clock=clock)
        await registry.load()

        assert registry.loaded
        assert registry.list_links() == []

    @pytest.mark.asyncio
    async def test_stored_expiry_flag_ignored(self, clock):
        """Test a stale expiry flag in stored data is not trusted."""
        blob = (
            '[{"id": "1", "original_url": "https://example.com", "short_code": "stale1",'
            ' "short_url": "http://testserver/stale1",'
            ' "created_at": "2024-01-01T10:00:00+00:00",'
            ' "expires_at": "2024-01-01T11:00:00+00:00",'
            ' "isExpired": false, "is_expired": false, "clicks": []}]'
        )
        registry = LinkRegistry(storage=InMemoryStorage(blob), clock=clock)
        await registry.load()

        record = registry.resolve("stale1")
        assert registry.is_expired(record)
        assert await registry.try_record_click("stale1") is ClickStatus.EXPIRED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("blob", [
        "{not json",
        '{"links": []}',
        '[{"id": "1"}]',
        '[{"id": "1", "original_url": "https://a.example", "short_code": "x1",'
        ' "created_at": "yesterday", "expires_at": "tomorrow"}]',
        '[{"id": "1", "original_url": "https://a.example", "short_code": "UPPER1",'
        ' "created_at": "2024-01-01T10:00:00+00:00",'
        ' "expires_at": "2024-01-01T11:00:00+00:00"}]',
        '[{"id": "1", "original_url": "https://a.example", "short_code": "naive1",'
        ' "created_at": "2024-01-01T10:00:00",'
        ' "expires_at": "2024-01-01T11:00:00"}]',
        '[{"id": "1", "original_url": "https://a.example", "short_code": "naive2",'
        ' "created_at": "2024-01-01T10:00:00+00:00",'
        ' "expires_at": "2024-01-01T11:00:00+00:00",'
        ' "clicks": [{"id": "c1", "timestamp": "2024-01-01T10:30:00"}]}]',
        '[{"id": "1", "original_url": "https://a.example", "short_code": "back01",'
        ' "created_at": "2024-01-01T11:00:00+00:00",'
        ' "expires_at": "2024-01-01T10:00:00+00:00"}]',
        '[{"id": "1", "original_url": "https://a.example", "short_code": "zero01",'
        ' "created_at": "2024-01-01T11:00:00+00:00",'
        ' "expires_at": "2024-01-01T11:00:00+00:00"}]',
    ])
    async def test_load_malformed(self, clock, blob):
        """Test malformed snapshots raise PersistenceError."""
        registry = LinkRegistry(storage=InMemoryStorage(blob), clock=clock)

        with pytest.raises(PersistenceError):
            await registry.load()

    @pytest.mark.asyncio
    async def test_load_duplicate_codes(self, clock):
        """Test a snapshot holding one code twice is refused."""
        record = (
            '{"id": "%s", "original_url": "https://example.com", "short_code": "dup1",'
            ' "created_at": "2024-01-01T10:00:00+00:00",'
            ' "expires_at": "2024-01-01T11:00:00+00:00", "clicks": []}'
        )
        blob = "[" + record % "1" + ", " + record % "2" + "]"
        registry = LinkRegistry(storage=InMemoryStorage(blob), clock=clock)

        with pytest.raises(PersistenceError, match="Duplicate"):
            await registry.load()

    @pytest.mark.asyncio
    async def test_health_check(self, registry):
        """Test health check."""
        health = await registry.health_check()

        assert health == {"storage": True, "loaded": True, "overall": True}


class TestShortURL:
    """Test short URL building."""

    def test_short_url_no_prefix(self, storage):
        registry = LinkRegistry(storage=storage, base_url="https://example.com/")

        assert registry.short_url_for("abc123") == "https://example.com/abc123"

    @pytest.mark.asyncio
    async def test_short_url_with_prefix(self, storage, clock):
        """Test the path prefix lands between origin and code."""
        registry = LinkRegistry(
            storage=storage,
            base_url="https://example.com",
            path_prefix="/s/",
            clock=clock,
        )
        await registry.load()

        record = await registry.create("https://example.com/page", custom_code="abc123")

        assert record.short_url == "https://example.com/s/abc123"
