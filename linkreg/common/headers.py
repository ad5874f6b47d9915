"""Header parsing utilities for click metadata."""

from typing import Dict, Mapping, Optional


def extract_click_metadata(headers: Mapping[str, str]) -> Dict[str, Optional[str]]:
    """Extract the descriptive click fields from request headers.

    Args:
        headers: Request headers

    Returns:
        Dictionary with user_agent and referrer (None when absent)
    """
    # Convert headers to lowercase for case-insensitive lookup
    headers_lower = {k.lower(): v for k, v in headers.items()}

    return {
        "user_agent": headers_lower.get("user-agent") or None,
        "referrer": headers_lower.get("referer") or None,
    }


def extract_forwarded_for(headers: Mapping[str, str]) -> Optional[str]:
    """Return the originating client from X-Forwarded-For, if present."""
    for k, v in headers.items():
        if k.lower() == "x-forwarded-for" and v:
            return v.split(",")[0].strip()
    return None
