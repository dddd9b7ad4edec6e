"""
Request Coordinator

Runs one screenshot request through the cache and, on a miss, the renderer:

    derive key -> cache check -> HIT
                              -> MISS -> admit -> DENIED
                                               -> render -> OK (store, respond)
                                                         -> FAIL

Every path ends in exactly one RenderOutcome, and an admitted request
always gives its permit back.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .admission import AdmissionController
from .cache_key import derive_key
from .cache_manager import ScreenshotCacheManager
from .errors import AdmissionDenied, RenderError

logger = logging.getLogger(__name__)


class OutcomeStatus(str, Enum):
    """Terminal state of a request"""
    HIT = "HIT"
    MISS = "MISS"
    OVERLOADED = "OVERLOADED"
    RENDER_FAILED = "RENDER_FAILED"


@dataclass
class RenderOutcome:
    """What the HTTP layer needs to answer a request."""
    status: OutcomeStatus
    key: str
    image: Optional[bytes] = None
    # Only meaningful on MISS: whether the fresh render made it into the cache
    cached: bool = False

    @property
    def ok(self) -> bool:
        return self.status in (OutcomeStatus.HIT, OutcomeStatus.MISS)


class RequestCoordinator:
    """Ties the cache, admission controller and renderer together."""

    def __init__(
        self,
        cache: ScreenshotCacheManager,
        admission: AdmissionController,
        renderer,
        render_timeout_ms: int = 30000,
    ):
        self.cache = cache
        self.admission = admission
        self.renderer = renderer
        self.render_timeout_ms = render_timeout_ms

    async def handle(self, url: str, width: int, height: int) -> RenderOutcome:
        """
        Serve a screenshot of ``url`` at ``width`` x ``height``.

        ``url`` must already be normalized; dimensions already clamped.
        """
        key = derive_key(url, width, height)

        cached = await self.cache.get(key)
        if cached is not None:
            logger.info(f"[Coordinator] Cache hit for {url}")
            return RenderOutcome(status=OutcomeStatus.HIT, key=key, image=cached)

        try:
            async with self.admission.permit():
                logger.info(
                    f"[Coordinator] Cache miss, capturing {url} at {width}x{height}"
                )
                try:
                    image = await self.renderer.render(
                        url, width, height, self.render_timeout_ms
                    )
                except RenderError as e:
                    logger.error(f"[Coordinator] Error capturing screenshot: {e}")
                    return RenderOutcome(status=OutcomeStatus.RENDER_FAILED, key=key)

                stored = await self.cache.put(key, image)
        except AdmissionDenied:
            return RenderOutcome(status=OutcomeStatus.OVERLOADED, key=key)

        logger.info(f"[Coordinator] Screenshot of {url} rendered ({len(image)} bytes)")
        return RenderOutcome(
            status=OutcomeStatus.MISS, key=key, image=image, cached=stored
        )
