"""Pydantic schemas for API requests and responses."""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from linkreg.models import ClickEvent, LinkRecord


class CreateLinkRequest(BaseModel):
    """Request to shorten a URL."""

    url: str = Field(..., description="The URL to shorten")
    custom_code: Optional[str] = Field(None, description="Optional custom short code (letters and digits)")
    validity_minutes: Optional[int] = Field(None, description="Minutes the link stays active")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "url": "https://example.com/very/long/path/to/resource",
                    "custom_code": None,
                    "validity_minutes": 30
                },
                {
                    "url": "https://github.com/user/repo",
                    "custom_code": "myrepo",
                    "validity_minutes": 1440
                }
            ]
        }
    }


class ClickRequest(BaseModel):
    """Request to record a click from a client other than the redirect."""

    source: str = Field("interface", description="Access channel tag", min_length=1, max_length=64)


class ClickEventResponse(BaseModel):
    """A recorded click."""

    id: str
    timestamp: datetime
    source: str
    user_agent: Optional[str] = None
    referrer: Optional[str] = None

    @classmethod
    def from_event(cls, event: ClickEvent) -> "ClickEventResponse":
        return cls(
            id=event.id,
            timestamp=event.timestamp,
            source=event.source,
            user_agent=event.user_agent,
            referrer=event.referrer,
        )


class LinkResponse(BaseModel):
    """A short link with its click history."""

    id: str = Field(..., description="Link identifier")
    short_code: str = Field(..., description="The short code")
    short_url: str = Field(..., description="The complete short URL")
    original_url: str = Field(..., description="The original long URL")
    created_at: datetime = Field(..., description="Creation timestamp")
    expires_at: datetime = Field(..., description="End of the validity window")
    is_expired: bool = Field(..., description="Whether the link was expired when this response was built")
    click_count: int
    clicks: List[ClickEventResponse] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: LinkRecord, now: datetime) -> "LinkResponse":
        return cls(
            id=record.id,
            short_code=record.short_code,
            short_url=record.short_url,
            original_url=record.original_url,
            created_at=record.created_at,
            expires_at=record.expires_at,
            is_expired=record.is_expired(now),
            click_count=record.click_count,
            clicks=[ClickEventResponse.from_event(c) for c in record.clicks],
        )


class LinkListResponse(BaseModel):
    """All links, most recent first."""

    links: List[LinkResponse]
    count: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall status")
    storage: str = Field(..., description="Storage status")
    links: int = Field(..., description="Number of links held")
    timestamp: datetime = Field(..., description="Check timestamp")


class ErrorResponse(BaseModel):
    """Error response."""

    detail: str = Field(..., description="Error message")
