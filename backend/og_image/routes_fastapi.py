"""
OG Image API Routes

Provides endpoints for:
- Rendering a URL to an OpenGraph-sized JPEG (cached)
- Health check
- Cache statistics
- Cache management (cleanup, clear)
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Query, HTTPException, Request
from fastapi.responses import Response, PlainTextResponse

from .config import (
    BROWSER_CACHE_CONTROL,
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    Settings,
)
from .coordinator import OutcomeStatus, RequestCoordinator
from .errors import InvalidTargetError
from .models import CacheStats, CacheStatsResponse, CleanupResponse, UsageResponse
from .request_params import (
    is_domain_allowed,
    normalize_target_url,
    parse_height,
    parse_width,
)

logger = logging.getLogger(__name__)

# ============================================
# Router
# ============================================

router = APIRouter(tags=["OG Image"])


def _settings(request: Request) -> Settings:
    return request.app.state.settings


def _coordinator(request: Request) -> RequestCoordinator:
    return request.app.state.coordinator


async def _collect_stats(coordinator: RequestCoordinator) -> CacheStats:
    # get_stats scans the durable tier
    stats = await asyncio.to_thread(coordinator.cache.get_stats)
    return CacheStats(
        **stats,
        renders_in_flight=coordinator.admission.in_flight,
        max_concurrent_renders=coordinator.admission.limit,
    )


# ============================================
# Endpoints
# ============================================

@router.get("/", response_model=None)
async def render_og_image(
    request: Request,
    url: Optional[str] = Query(None, description="Page to capture"),
    width: Optional[str] = Query(None, description="Viewport width in pixels"),
    height: Optional[str] = Query(None, description="Viewport height in pixels"),
):
    """
    Capture ``url`` as a JPEG of ``width`` x ``height``.

    This endpoint:
    1. Normalizes the URL and clamps the dimensions
    2. Checks the domain allowlist
    3. Serves from cache, or renders and caches on a miss

    Example:
        GET /?url=https://example.com&width=1200&height=630
    """
    settings = _settings(request)

    if not url:
        return UsageResponse(
            usage="/?url=https://example.com&width=1200&height=630",
            max_width=settings.max_width,
            max_height=settings.max_height,
            default_width=DEFAULT_WIDTH,
            default_height=DEFAULT_HEIGHT,
            allowed_domains=settings.allowed_domains,
        )

    parsed_width = parse_width(width, settings.max_width)
    parsed_height = parse_height(height, settings.max_height)

    try:
        target_url = normalize_target_url(url)
    except InvalidTargetError:
        raise HTTPException(status_code=400, detail="Invalid URL")

    if not is_domain_allowed(target_url, settings.allowed_domains):
        logger.error(f"[OgImage] Blocked request for non-whitelisted domain: {target_url}")
        raise HTTPException(
            status_code=403,
            detail="Access denied: this domain is not in the allowed domains list",
        )

    try:
        outcome = await _coordinator(request).handle(
            target_url, parsed_width, parsed_height
        )
    except Exception as e:
        logger.exception(f"[OgImage] Unexpected error for {target_url}: {e}")
        raise HTTPException(status_code=500, detail="Error capturing screenshot")

    if outcome.status == OutcomeStatus.OVERLOADED:
        raise HTTPException(
            status_code=429,
            detail="Too many requests. Please try again later.",
        )
    if outcome.status == OutcomeStatus.RENDER_FAILED:
        raise HTTPException(status_code=500, detail="Error capturing screenshot")

    return Response(
        content=outcome.image,
        media_type="image/jpeg",
        headers={
            "X-Cache": outcome.status.value,
            "Cache-Control": BROWSER_CACHE_CONTROL,
        },
    )


@router.get("/health", response_class=PlainTextResponse)
async def health_check():
    """Health check endpoint for container probes."""
    return "OK"


@router.get("/stats", response_model=CacheStatsResponse)
async def get_cache_stats(request: Request):
    """
    Get cache statistics.

    Returns information about:
    - Hit/miss counters per tier
    - Disk usage against the ceiling
    - Renders currently in flight
    """
    return CacheStatsResponse(stats=await _collect_stats(_coordinator(request)))


@router.post("/cache/cleanup", response_model=CleanupResponse)
async def cleanup_cache(request: Request):
    """
    Remove entries past the retention window.

    This also runs on a 24 hour schedule; the endpoint triggers it now.
    """
    coordinator = _coordinator(request)
    removed = await coordinator.cache.sweep_expired()
    return CleanupResponse(
        removed_entries=removed,
        current_stats=await _collect_stats(coordinator),
    )


@router.delete("/cache", response_model=CleanupResponse)
async def clear_cache(request: Request):
    """
    Clear all cached images.

    Use with caution - this removes all cached images.
    """
    coordinator = _coordinator(request)
    removed = await coordinator.cache.clear()
    return CleanupResponse(
        removed_entries=removed,
        current_stats=await _collect_stats(coordinator),
    )
