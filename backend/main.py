from __future__ import annotations

import logging

from mafia_lobby.application import app
from mafia_lobby.config import settings

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

__all__ = ["app"]
