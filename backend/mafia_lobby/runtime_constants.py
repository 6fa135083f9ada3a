from __future__ import annotations

import re
from typing import Any

from .config import settings
from .runtime_types import Role

MIN_PLAYERS = settings.min_players
MAX_PLAYERS = settings.max_players
MIN_READY_PLAYERS = settings.min_ready_players
SWEEP_INTERVAL_SECONDS = settings.sweep_interval_seconds
SEND_TIMEOUT_SECONDS = settings.send_timeout_seconds

ROOM_CODE_CHARS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
ROOM_CODE_LENGTH = 6
ROOM_CODE_PATTERN = re.compile(r"[A-Z0-9]{6}")

USERNAME_MIN_LENGTH = 2
USERNAME_MAX_LENGTH = 20
USERNAME_PATTERN = re.compile(r"[a-zA-Z0-9 _-]+")

ROLE_INFO: dict[Role, dict[str, Any]] = {
    "mafia": {
        "name": "🔪 Mafia",
        "description": (
            "You are part of the Mafia! Work together with your fellow Mafia members to "
            "eliminate the innocent townspeople. You win when the Mafia equals or "
            "outnumbers the remaining players."
        ),
        "team": "Mafia Team",
        "color": "mafia",
    },
    "detective": {
        "name": "🔍 Detective",
        "description": (
            "You are the Detective! Each night, you can investigate one player to learn "
            "their true identity. Use this information to help the town identify and "
            "eliminate the Mafia."
        ),
        "team": "Town Team",
        "color": "detective",
    },
    "doctor": {
        "name": "⚕️ Doctor",
        "description": (
            "You are the Doctor! Each night, you can protect one player (including "
            "yourself) from being eliminated. Use your power wisely to keep important "
            "townspeople alive."
        ),
        "team": "Town Team",
        "color": "doctor",
    },
    "civilian": {
        "name": "👤 Civilian",
        "description": (
            "You are a Civilian! You have no special powers, but you have your voice and "
            "your vote. Pay attention during discussions and help identify the Mafia members."
        ),
        "team": "Town Team",
        "color": "civilian",
    },
}

ERROR_START_FAILED = "Failed to start game"
ERROR_INTERNAL = "Internal server error"
