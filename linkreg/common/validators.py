"""Validation utilities for the link registry."""

import re
from urllib.parse import urlparse
from typing import Tuple

MAX_URL_LENGTH = 2048

# Path segments the web app routes itself; a short code may not shadow them.
RESERVED_WORDS = frozenset({
    "api", "health", "admin", "static", "assets", "favicon",
    "robots", "sitemap", "docs", "redoc", "openapi",
})

_SHORT_CODE_RE = re.compile(r'^[a-z0-9]+$')


def is_valid_url(url: str) -> Tuple[bool, str]:
    """Validate a URL.

    Args:
        url: The URL to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not url or not isinstance(url, str):
        return False, "URL is required"

    if len(url) > MAX_URL_LENGTH:
        return False, f"URL is too long (max {MAX_URL_LENGTH} characters)"

    try:
        result = urlparse(url)
        # Accessing .port raises for malformed ports such as "host:abc"
        result.port
    except ValueError as e:
        return False, f"Invalid URL format: {e}"

    if result.scheme not in ("http", "https"):
        return False, "URL must use http or https protocol"

    if not result.hostname:
        return False, "URL must have a valid domain"

    return True, ""


def is_valid_short_code(short_code: str, min_length: int = 1, max_length: int = 20) -> Tuple[bool, str]:
    """Validate a normalized (lowercase) short code.

    Args:
        short_code: The short code to validate
        min_length: Minimum length for short code
        max_length: Maximum length for short code

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not short_code or not isinstance(short_code, str):
        return False, "Short code is required"

    if len(short_code) < min_length:
        return False, f"Short code must be at least {min_length} characters"

    if len(short_code) > max_length:
        return False, f"Short code must be at most {max_length} characters"

    if not _SHORT_CODE_RE.match(short_code):
        return False, "Short code can only contain letters and numbers"

    if is_reserved_word(short_code):
        return False, f"'{short_code}' is a reserved word and cannot be used"

    return True, ""


def is_reserved_word(short_code: str) -> bool:
    return short_code.lower() in RESERVED_WORDS


def is_valid_validity_minutes(validity_minutes, max_minutes: int) -> Tuple[bool, str]:
    """Validate a validity window in minutes.

    Args:
        validity_minutes: Requested window
        max_minutes: Upper bound accepted

    Returns:
        Tuple of (is_valid, error_message)
    """
    # bool is an int subclass; True would otherwise pass as one minute
    if isinstance(validity_minutes, bool) or not isinstance(validity_minutes, int):
        return False, "Validity must be a whole number of minutes"

    if validity_minutes < 1:
        return False, "Validity must be at least 1 minute"

    if validity_minutes > max_minutes:
        return False, f"Validity must be at most {max_minutes} minutes"

    return True, ""
