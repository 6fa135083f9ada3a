from __future__ import annotations

import uvicorn

from mafia_lobby.config import settings


if __name__ == "__main__":
    # Run from backend/ so "main:app" and the mafia_lobby package resolve.
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.ws_port,
        log_level=settings.log_level.lower(),
        reload=True,
        reload_dirs=["mafia_lobby"],
    )
