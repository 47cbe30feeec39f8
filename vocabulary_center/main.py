"""FastAPI application for the Vocabulary Center storefront.

run: uvicorn vocabulary_center.main:app --host 127.0.0.1 --port 5000 --reload
"""
from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from .app.routes.auth import router as auth_router  # noqa: E402
from .app.routes.catalog import router as catalog_router  # noqa: E402
from .app.routes.downloads import router as downloads_router  # noqa: E402
from .app.routes.orders import router as orders_router  # noqa: E402
from .config import AppConfig, get_app_config  # noqa: E402
from .db import ensure_schema, get_connection_factory  # noqa: E402
from .errors import register_exception_handlers  # noqa: E402

logger = logging.getLogger("vocabulary_center")


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(config: Optional[AppConfig] = None, *, init_schema: bool = True) -> FastAPI:
    config = config or get_app_config()
    app = FastAPI(title="Vocabulary Center API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(catalog_router)
    app.include_router(orders_router)
    app.include_router(downloads_router)
    register_exception_handlers(app, production=config.is_production)

    @app.get("/api/health")
    def health() -> dict:
        return {"status": "OK", "message": "Server is running"}

    if init_schema:

        @app.on_event("startup")
        def setup_schema() -> None:
            ensure_schema(get_connection_factory())

    logger.info("Application configured for %s", config.environment)
    return app


configure_logging()
app = create_app()
