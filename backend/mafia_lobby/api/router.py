from __future__ import annotations

from fastapi import APIRouter

from mafia_lobby.api import rooms, system, ws

api_router = APIRouter()
for module in (system, rooms, ws):
    api_router.include_router(module.router)
