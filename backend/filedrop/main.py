"""FileDrop FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from filedrop import __version__
from filedrop.config import settings
from filedrop.services import init_services, shutdown_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    # === STARTUP ===
    _setup_logging()

    Path(settings.static_dir).mkdir(parents=True, exist_ok=True)
    init_services()

    logger.info("FileDrop v%s started — listening on %s:%s", __version__, settings.host, settings.port)
    logger.info("Upload directory: %s", settings.upload_dir)
    logger.info("Static directory: %s", settings.static_dir)

    try:
        yield
    finally:
        # === SHUTDOWN ===
        shutdown_services()
        logger.info("FileDrop shutting down")


def _setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for noisy in ("multipart", "python_multipart"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def create_app() -> FastAPI:
    """Application factory."""
    from filedrop.api.routes import api_router, web_router

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        debug=settings.debug,
        lifespan=_lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.api_prefix)
    app.include_router(web_router)

    # Directory is created in the lifespan, so don't check it at import time
    app.mount(
        "/static",
        StaticFiles(directory=settings.static_dir, check_dir=False),
        name="static",
    )

    return app


app = create_app()


def run(**kwargs: Any) -> None:
    import uvicorn

    uvicorn.run(
        "filedrop.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=settings.uvicorn_workers,
        log_level=settings.log_level.lower(),
        **kwargs,
    )


if __name__ == "__main__":
    run()
