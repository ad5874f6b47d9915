"""Data models for the link registry."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


def _parse_timestamp(value) -> datetime:
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    # Expiry checks compare against an aware clock
    if parsed.tzinfo is None or parsed.utcoffset() is None:
        raise ValueError(f"Timestamp {value!r} has no timezone")
    return parsed


class ClickStatus(str, Enum):
    """Outcome of a click recording attempt."""

    RECORDED = "recorded"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"


@dataclass(frozen=True)
class ClickEvent:
    """A single recorded access to a short link."""

    id: str
    timestamp: datetime
    source: str
    user_agent: Optional[str] = None
    referrer: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "source": self.source,
            "user_agent": self.user_agent,
            "referrer": self.referrer,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ClickEvent":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            timestamp=_parse_timestamp(data["timestamp"]),
            source=data.get("source", "direct"),
            user_agent=data.get("user_agent"),
            referrer=data.get("referrer"),
        )


@dataclass(frozen=True)
class LinkRecord:
    """A short code mapped to an original URL for a validity window."""

    id: str
    original_url: str
    short_code: str
    short_url: str
    created_at: datetime
    expires_at: datetime
    clicks: Tuple[ClickEvent, ...] = field(default_factory=tuple)

    def is_expired(self, now: datetime) -> bool:
        """Whether the link is past its validity window at ``now``."""
        return now > self.expires_at

    @property
    def click_count(self) -> int:
        return len(self.clicks)

    def with_click(self, click: ClickEvent) -> "LinkRecord":
        """Return a copy of this record with ``click`` appended."""
        return LinkRecord(
            id=self.id,
            original_url=self.original_url,
            short_code=self.short_code,
            short_url=self.short_url,
            created_at=self.created_at,
            expires_at=self.expires_at,
            clicks=self.clicks + (click,),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary.

        Expiry is not written; it is derived from ``expires_at`` on read.
        """
        return {
            "id": self.id,
            "original_url": self.original_url,
            "short_code": self.short_code,
            "short_url": self.short_url,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "clicks": [click.to_dict() for click in self.clicks],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LinkRecord":
        """Create from dictionary, ignoring any stored expiry flag."""
        return cls(
            id=data["id"],
            original_url=data["original_url"],
            short_code=data["short_code"],
            short_url=data.get("short_url", ""),
            created_at=_parse_timestamp(data["created_at"]),
            expires_at=_parse_timestamp(data["expires_at"]),
            clicks=tuple(ClickEvent.from_dict(c) for c in data.get("clicks", [])),
        )
