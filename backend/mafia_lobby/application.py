from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from mafia_lobby.api.router import api_router
from mafia_lobby.config import settings
from mafia_lobby.runtime import runtime

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="Mafia Lobby Backend", version="1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    if settings.static_dir:
        static_path = Path(settings.static_dir)
        if static_path.is_dir():
            app.mount("/", StaticFiles(directory=static_path, html=True), name="static")
        else:
            logger.warning("STATIC_DIR %s is not a directory, static files disabled", static_path)

    @app.on_event("startup")
    async def on_startup() -> None:
        runtime.start()

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        await runtime.shutdown()

    return app


app = create_app()
