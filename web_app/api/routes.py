"""API routes implementation."""

from fastapi import APIRouter, Request, Response, HTTPException, status
from datetime import datetime, timezone
from typing import Optional

from .schemas import (
    ClickRequest,
    CreateLinkRequest,
    ErrorResponse,
    HealthResponse,
    LinkListResponse,
    LinkResponse,
)
from linkreg.errors import (
    CodeSpaceExhaustedError,
    DuplicateCodeError,
    PersistenceError,
    ValidationError,
)
from linkreg.models import ClickStatus
from linkreg.common.headers import extract_click_metadata

router = APIRouter()


@router.post(
    "/links",
    response_model=LinkResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid request"},
        409: {"model": ErrorResponse, "description": "Short code already exists"},
        500: {"model": ErrorResponse, "description": "Storage failure"},
        503: {"model": ErrorResponse, "description": "No free short code"},
    },
    summary="Create short link",
    description="Create an expiring short link. Optionally provide a custom short code.",
)
async def create_link(request: Request, body: CreateLinkRequest):
    """Create a short link."""
    registry = request.app.state.registry

    try:
        record = await registry.create(
            original_url=body.url,
            custom_code=body.custom_code,
            validity_minutes=body.validity_minutes,
        )
    except DuplicateCodeError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except CodeSpaceExhaustedError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Storage error: {e}",
        )

    return LinkResponse.from_record(record, registry.clock())


@router.get(
    "/links",
    response_model=LinkListResponse,
    summary="List links",
    description="All links with their clicks, most recently created first.",
)
async def list_links(request: Request):
    """List all links."""
    registry = request.app.state.registry
    now = registry.clock()

    links = [LinkResponse.from_record(r, now) for r in registry.list_links()]
    return LinkListResponse(links=links, count=len(links))


@router.get(
    "/links/{short_code}",
    response_model=LinkResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Short code not found"},
    },
    summary="Get link",
    description="Get a link and its click history. Expired links are still returned.",
)
async def get_link(request: Request, short_code: str):
    """Get information about a short link."""
    registry = request.app.state.registry

    record = registry.resolve(short_code)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Short code '{short_code}' not found",
        )

    return LinkResponse.from_record(record, registry.clock())


@router.post(
    "/links/{short_code}/clicks",
    response_model=LinkResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse, "description": "Short code not found"},
        410: {"model": ErrorResponse, "description": "Link expired"},
    },
    summary="Record click",
    description="Record a visit made from a client other than the redirect route.",
)
async def record_click(request: Request, short_code: str, body: Optional[ClickRequest] = None):
    """Record a click on a short link."""
    registry = request.app.state.registry
    body = body or ClickRequest()
    metadata = extract_click_metadata(request.headers)

    try:
        result = await registry.try_record_click(short_code, source=body.source, **metadata)
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Storage error: {e}",
        )

    if result is ClickStatus.NOT_FOUND:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Short code '{short_code}' not found",
        )
    if result is ClickStatus.EXPIRED:
        raise HTTPException(
            status_code=status.HTTP_410_GONE,
            detail=f"Short code '{short_code}' has expired",
        )

    return LinkResponse.from_record(registry.resolve(short_code), registry.clock())


@router.delete(
    "/links/{link_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete link",
    description="Delete a link by id. Deleting an unknown id succeeds.",
)
async def delete_link(request: Request, link_id: str):
    """Delete a short link."""
    registry = request.app.state.registry

    try:
        await registry.delete(link_id)
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Storage error: {e}",
        )

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check if the service is healthy.",
)
async def health_check(request: Request):
    """Health check endpoint for load balancers and monitoring."""
    registry = request.app.state.registry

    health = await registry.health_check()

    return HealthResponse(
        status="healthy" if health["overall"] else "unhealthy",
        storage="healthy" if health["storage"] else "unhealthy",
        links=len(registry),
        timestamp=datetime.now(timezone.utc),
    )
