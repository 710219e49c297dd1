"""Main entry point for the Turnline application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from turnline.api.v1 import (
    admin_router,
    events_router,
    stats_router,
    system_router,
    tickets_router,
    windows_router,
)
from turnline.core.errors import TurnlineError
from turnline.core.settings import settings
from turnline.services.rollover_worker import DailyRolloverWorker

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Turnline API",
    description="Service ticket queue with window ownership and daily rollover",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(tickets_router, prefix="/api/v1")
app.include_router(windows_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")
app.include_router(stats_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")
app.include_router(events_router, prefix="/api/v1")


@app.exception_handler(TurnlineError)
async def turnline_error_handler(request: Request, exc: TurnlineError) -> JSONResponse:
    """Render domain errors as ``{"code", "detail"}`` with their HTTP status."""
    if exc.status_code >= 409:
        logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.on_event("startup")
async def on_startup() -> None:
    if settings.rollover_enabled:
        worker = DailyRolloverWorker()
        await worker.start()
        app.state.rollover_worker = worker
    else:
        app.state.rollover_worker = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    worker: DailyRolloverWorker | None = getattr(app.state, "rollover_worker", None)
    if worker:
        await worker.stop()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Service ticket queue with window ownership and daily rollover",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("turnline.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
