from __future__ import annotations

import random
from dataclasses import replace
from typing import Any, Sequence

from .runtime_constants import ROLE_INFO
from .runtime_errors import QuotaMismatch
from .runtime_types import Player, Role, RoleQuota
from .runtime_utils import shuffle


def build_role_labels(quota: RoleQuota) -> list[Role]:
    labels: list[Role] = []
    labels.extend(["mafia"] * quota.mafia)
    labels.extend(["detective"] * quota.detective)
    labels.extend(["doctor"] * quota.doctor)
    labels.extend(["civilian"] * quota.civilian)
    return labels


def assign_roles(
    players: Sequence[Player],
    quota: RoleQuota,
    rng: random.Random | None = None,
) -> list[Player]:
    """Return copies of ``players`` with a shuffled role each, in roster order.

    The quota must describe exactly ``len(players)`` seats; anything else is a
    bug in the caller and raises ``QuotaMismatch``.
    """
    labels = build_role_labels(quota)
    if len(players) != quota.total or len(labels) != quota.total:
        raise QuotaMismatch(len(players), quota.total)

    shuffled_labels = shuffle(labels, rng)
    return [replace(player, role=role) for player, role in zip(players, shuffled_labels)]


def role_info(role: str | None) -> dict[str, Any]:
    return dict(ROLE_INFO.get(role, ROLE_INFO["civilian"]))  # type: ignore[arg-type]


def mafia_teammates(players: Sequence[Player], player: Player) -> list[dict[str, str]]:
    if player.role != "mafia":
        return []
    return [
        {"id": other.player_id, "username": other.username}
        for other in players
        if other.role == "mafia" and other.player_id != player.player_id
    ]
