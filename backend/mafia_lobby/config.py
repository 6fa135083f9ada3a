from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


class Settings:
    def __init__(self) -> None:
        self.ws_port = int(os.getenv("WS_PORT", "3000"))
        self.min_players = max(1, int(os.getenv("MIN_PLAYERS", "4")))
        self.max_players = max(self.min_players, int(os.getenv("MAX_PLAYERS", "20")))
        self.min_ready_players = max(1, int(os.getenv("MIN_READY_PLAYERS", "4")))
        self.sweep_interval_seconds = max(
            1.0,
            float(os.getenv("SWEEP_INTERVAL_SECONDS", "30")),
        )
        self.send_timeout_seconds = max(
            0.5,
            float(os.getenv("SEND_TIMEOUT_SECONDS", "5")),
        )
        self.static_dir = os.getenv("STATIC_DIR", "").strip() or None
        self.cors_origins = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ] or ["*"]
        self.log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"


settings = Settings()
