"""Core business logic for the link registry."""

from .errors import (
    LinkRegistryError,
    ValidationError,
    DuplicateCodeError,
    CodeSpaceExhaustedError,
    PersistenceError,
)
from .models import ClickEvent, ClickStatus, LinkRecord
from .shortcode import ShortCodeGenerator
from .registry import LinkRegistry

__all__ = [
    "LinkRegistryError",
    "ValidationError",
    "DuplicateCodeError",
    "CodeSpaceExhaustedError",
    "PersistenceError",
    "ClickEvent",
    "ClickStatus",
    "LinkRecord",
    "ShortCodeGenerator",
    "LinkRegistry",
]
