"""
Application factory for the OG image service.

Wires settings, the two-tier cache, admission control, the renderer and
the background sweeper into a FastAPI app.

Run with:
    og-image                # console script
    python -m og_image.app
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request

from .admission import AdmissionController
from .blob_store import FileBlobStore
from .cache_manager import ScreenshotCacheManager
from .config import Settings
from .coordinator import RequestCoordinator
from .memory_store import MemoryStore
from .renderer import PlaywrightRenderer
from .routes_fastapi import router

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Content-Security-Policy": "default-src 'self'; style-src 'self' 'unsafe-inline'",
    "Referrer-Policy": "no-referrer",
}


def _log_configuration(settings: Settings) -> None:
    logger.info("[OgImage] Configuration:")
    logger.info(f"  - Max width: {settings.max_width}px")
    logger.info(f"  - Max height: {settings.max_height}px")
    logger.info(f"  - Max cache size: {settings.max_cache_size_mb}MB")
    logger.info(f"  - Max concurrent requests: {settings.max_concurrent_renders}")
    if settings.allowlist_enabled:
        logger.info(
            f"[OgImage] Domain whitelist enabled with {len(settings.allowed_domains)} domains:"
        )
        for domain in settings.allowed_domains:
            logger.info(f"  - {domain}")
    else:
        logger.warning("[OgImage] No domain whitelist configured. Any domain is allowed.")


def create_app(
    settings: Optional[Settings] = None,
    renderer=None,
    blob_store=None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Defaults to Settings.from_env()
        renderer: Defaults to a PlaywrightRenderer
        blob_store: Defaults to a FileBlobStore under settings.cache_dir
    """
    settings = settings or Settings.from_env()
    if renderer is None:
        renderer = PlaywrightRenderer(
            executable_path=settings.browser_executable,
            timeout_ms=settings.render_timeout_ms,
        )
    if blob_store is None:
        blob_store = FileBlobStore(settings.cache_dir)

    cache = ScreenshotCacheManager(
        blob_store,
        max_cache_size_mb=settings.max_cache_size_mb,
        memory_store=MemoryStore(max_entries=settings.memory_cache_max_entries),
    )
    coordinator = RequestCoordinator(
        cache=cache,
        admission=AdmissionController(settings.max_concurrent_renders),
        renderer=renderer,
        render_timeout_ms=settings.render_timeout_ms,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await renderer.start()
        cache.sweeper.start()
        _log_configuration(settings)
        try:
            yield
        finally:
            await cache.sweeper.stop()
            await renderer.close()

    app = FastAPI(title="URL to OpenGraph Image Service", lifespan=lifespan)
    app.state.settings = settings
    app.state.coordinator = coordinator

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers[name] = value
        return response

    app.include_router(router)
    return app


def run() -> None:
    """Console entry point."""
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app(settings)
    logger.info(f"[OgImage] Server is running at http://localhost:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
