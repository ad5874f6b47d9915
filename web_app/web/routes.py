"""Redirect route implementation."""

from fastapi import APIRouter, Request, HTTPException, status
from fastapi.responses import RedirectResponse

from linkreg.errors import PersistenceError
from linkreg.models import ClickStatus
from linkreg.common.headers import extract_click_metadata

router = APIRouter()


@router.get("/{short_code}", include_in_schema=False)
async def redirect_to_url(request: Request, short_code: str):
    """Record a direct click and redirect to the original URL."""
    registry = request.app.state.registry

    record = registry.resolve(short_code)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Short code '{short_code}' not found",
        )

    if registry.is_expired(record):
        raise HTTPException(
            status_code=status.HTTP_410_GONE,
            detail=f"Short code '{short_code}' has expired",
        )

    metadata = extract_click_metadata(request.headers)
    try:
        result = await registry.try_record_click(short_code, source="direct", **metadata)
    except PersistenceError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Storage error: {e}",
        )

    # The link may have expired or been deleted between resolve and the click
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

    # 302 so every visit comes back through the click ledger
    return RedirectResponse(url=record.original_url, status_code=status.HTTP_302_FOUND)
