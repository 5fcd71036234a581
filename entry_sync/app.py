"""
FastAPI application entry point for the entry sync service.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from entry_sync.config import Settings, get_settings
from entry_sync.db import EntryStore
from entry_sync.dependencies import build_entry_store, build_token_verifier
from entry_sync.errors import register_error_handlers
from entry_sync.identity import TokenVerifier
from entry_sync.routes import health_router, router

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(
    settings: Optional[Settings] = None,
    *,
    entry_store: Optional[EntryStore] = None,
    token_verifier: Optional[TokenVerifier] = None,
) -> FastAPI:
    """
    Build the app. The store and verifier default to the ones described by
    `settings`; a missing store connection string fails here, before serving.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    store = entry_store if entry_store is not None else build_entry_store(settings)
    verifier = (
        token_verifier if token_verifier is not None else build_token_verifier(settings)
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await run_in_threadpool(store.initialize)
        app.state.entry_store = store
        logger.info("Entry store ready (%s)", store.__class__.__name__)
        try:
            yield
        finally:
            app.state.entry_store = None
            store.close()
            logger.info("Entry store closed")

    app = FastAPI(title="Entry Sync Backend (FastAPI)", version="0.1.0", lifespan=lifespan)
    app.state.entry_store = None
    app.state.token_verifier = verifier

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(router, prefix=settings.api_prefix)
    return app
