"""
FastAPI application entry point for the travel journal backend.
"""

from __future__ import annotations

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from travelstory.config import Settings, get_settings
from travelstory.errors import install_exception_handlers
from travelstory.routes import router

logger = logging.getLogger(__name__)


def _serves_local_uploads(settings: Settings) -> bool:
    return not settings.use_in_memory_backends and not settings.cos_bucket


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Travel Story Backend", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    install_exception_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)

    if _serves_local_uploads(settings):
        os.makedirs(settings.uploads_dir, exist_ok=True)
        app.mount(
            "/uploads",
            StaticFiles(directory=settings.uploads_dir),
            name="uploads",
        )
    if os.path.isdir(settings.assets_dir):
        app.mount(
            "/assets", StaticFiles(directory=settings.assets_dir), name="assets"
        )
    else:
        logger.warning("Assets directory %s not found", settings.assets_dir)
    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    uvicorn.run(
        create_app(settings),
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
    )


if __name__ == "__main__":
    run()
