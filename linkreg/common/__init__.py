"""Common utilities for the link registry."""

from .validators import is_valid_url, is_valid_short_code, is_valid_validity_minutes
from .headers import extract_click_metadata, extract_forwarded_for
from .logging_config import setup_logging

__all__ = [
    "is_valid_url",
    "is_valid_short_code",
    "is_valid_validity_minutes",
    "extract_click_metadata",
    "extract_forwarded_for",
    "setup_logging",
]
