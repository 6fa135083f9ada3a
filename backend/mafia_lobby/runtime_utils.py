from __future__ import annotations

import random
import re
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence, TypeVar

from .runtime_constants import (
    ROOM_CODE_CHARS,
    ROOM_CODE_LENGTH,
    ROOM_CODE_PATTERN,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
    USERNAME_PATTERN,
)
from .runtime_types import Player, RoleQuota, RoomSettings

T = TypeVar("T")


def now_ms() -> int:
    return int(time.time() * 1000)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def random_id() -> str:
    return str(uuid.uuid4())


def generate_player_id() -> str:
    return f"player_{now_ms()}_{uuid.uuid4().hex[:9]}"


def random_room_code(length: int = ROOM_CODE_LENGTH, rng: random.Random | None = None) -> str:
    chooser = rng or random
    return "".join(chooser.choice(ROOM_CODE_CHARS) for _ in range(length))


def normalize_room_code(raw: Any) -> str:
    return str(raw or "").strip().upper()


def is_valid_room_code(code: Any) -> bool:
    return isinstance(code, str) and ROOM_CODE_PATTERN.fullmatch(code) is not None


def validate_username(username: Any) -> tuple[bool, str]:
    value = str(username or "").strip()
    if not value:
        return False, "Username is required"
    if len(value) < USERNAME_MIN_LENGTH:
        return False, "Username must be at least 2 characters"
    if len(value) > USERNAME_MAX_LENGTH:
        return False, "Username must be less than 20 characters"
    if not USERNAME_PATTERN.fullmatch(value):
        return False, "Username can only contain letters, numbers, spaces, _ and -"
    return True, ""


def calculate_role_distribution(
    total_players: int,
    mafia_count: int,
    detective_count: int,
    doctor_count: int,
) -> RoleQuota:
    special_roles = mafia_count + detective_count + doctor_count
    return RoleQuota(
        mafia=mafia_count,
        detective=detective_count,
        doctor=doctor_count,
        civilian=total_players - special_roles,
        total=total_players,
    )


def quota_for_ready_players(settings: RoomSettings, ready_count: int) -> RoleQuota:
    # Special roles shrink with the ready roster: mafia up to a third, one detective, one doctor.
    return calculate_role_distribution(
        ready_count,
        min(settings.mafia, ready_count // 3),
        min(settings.detective, 1),
        min(settings.doctor, 1),
    )


def shuffle(items: Iterable[T], rng: random.Random | None = None) -> list[T]:
    """Fisher-Yates shuffle returning a new list; the input is left untouched."""
    shuffled = list(items)
    randrange = (rng or random).randrange
    for index in range(len(shuffled) - 1, 0, -1):
        swap_index = randrange(index + 1)
        shuffled[index], shuffled[swap_index] = shuffled[swap_index], shuffled[index]
    return shuffled


def get_minimum_players(settings: RoomSettings) -> int:
    return max(4, settings.mafia + settings.detective + settings.doctor + 2)


def all_players_ready(players: Sequence[Player]) -> bool:
    return bool(players) and all(player.ready for player in players)


def sanitize_log_text(value: Any, limit: int = 40) -> str:
    return re.sub(r"\s+", " ", str(value or "")).strip()[:limit]
