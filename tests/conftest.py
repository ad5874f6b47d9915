"""Pytest configuration and fixtures."""

import pytest
from datetime import datetime, timedelta, timezone
from typing import List

from linkreg.registry import LinkRegistry
from linkreg.shortcode import ShortCodeGenerator
from linkreg.storage import InMemoryStorage
from linkreg.common.logging_config import setup_logging


class FakeClock:
    """Controllable clock; call it to read the time, advance() to move it."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class ScriptedGenerator(ShortCodeGenerator):
    """Generator that hands out a fixed sequence of codes, then repeats the last."""

    def __init__(self, codes: List[str]):
        super().__init__(default_length=6)
        self.codes = list(codes)
        self.calls = 0

    def generate_random(self, length=None) -> str:
        self.calls += 1
        if len(self.codes) > 1:
            return self.codes.pop(0)
        return self.codes[0]


@pytest.fixture
def logger():
    """Create test logger."""
    return setup_logging(level="DEBUG")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def short_code_generator():
    """Create short code generator."""
    return ShortCodeGenerator(default_length=6)


@pytest.fixture
async def registry(storage, short_code_generator, logger, clock) -> LinkRegistry:
    """Create a loaded, memory-backed registry."""
    registry = LinkRegistry(
        storage=storage,
        short_code_generator=short_code_generator,
        logger=logger,
        base_url="http://testserver",
        clock=clock,
    )
    await registry.load()
    return registry


@pytest.fixture
def sample_urls():
    """Sample URLs for testing."""
    return [
        "https://example.com/page",
        "https://github.com/user/repo",
        "https://stackoverflow.com/questions/123456",
    ]
