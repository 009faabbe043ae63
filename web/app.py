"""FastAPI application entry point for the Career Report Renderer."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from web.config import get_settings
from web.services import (
    AssetCache,
    BrowserManager,
    DriveStorage,
    FatalStartupError,
    LinkRegistrar,
    PageRenderer,
    ReportPipeline,
)


logger = logging.getLogger("careerreport.web")
logging.basicConfig(level=logging.INFO)

settings = get_settings()

SERVICE_NAME = "career-report-renderer"

app = FastAPI(title="Career Report Renderer", debug=settings.DEBUG)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def on_startup() -> None:
    """Preload assets and wire up the report pipeline before serving."""
    assets = AssetCache(settings.ASSETS_DIR)
    try:
        assets.preload()
    except FatalStartupError:
        logger.critical("Critical error preloading assets; refusing to start")
        raise

    app.state.pipeline = ReportPipeline(
        assets=assets,
        browser_manager=BrowserManager.from_settings(settings),
        renderer=PageRenderer(timeout_ms=settings.RENDER_TIMEOUT_MS),
        storage=DriveStorage.from_settings(settings),
        registrar=LinkRegistrar.from_settings(settings),
    )
    logger.info("Career Report Renderer ready")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    """Flush pending link notifications and stop the browser."""
    pipeline = getattr(app.state, "pipeline", None)
    if pipeline is None:
        return
    if pipeline.registrar is not None:
        await pipeline.registrar.drain()
    await pipeline.browser_manager.close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Simple health check endpoint."""
    return {"status": "ok", "service": SERVICE_NAME}


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Custom HTTP exception responses."""
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        detail = exc.detail or "The requested resource was not found."
    else:
        detail = exc.detail or "An error occurred while processing the request."
    return JSONResponse({"error": detail}, status_code=exc.status_code)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unhandled errors."""
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        {"error": "Internal server error"},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


# Import routes after the app is configured to avoid circular imports.
from web.routes import reports as report_routes  # noqa: E402  pylint: disable=wrong-import-position

app.include_router(report_routes.router)
