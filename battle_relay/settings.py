# battle_relay/settings.py
from __future__ import annotations

from pydantic import BaseModel
import os


class Settings(BaseModel):
    APP_NAME: str = "battle-relay"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3001

    # Dev
    LOG_LEVEL: str = "INFO"

    # WebSocket / CORS origin policy (comma-separated, "*" allows any)
    WS_ALLOWED_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173"

    # Rooms
    ROOM_CODE_LENGTH: int = 6
    # empty room survives this long so a player can rejoin by code
    ROOM_GRACE_SEC: float = 120
    SWEEP_INTERVAL_SEC: float = 300


def get_settings() -> Settings:
    return Settings(
        APP_NAME=os.getenv("APP_NAME", "battle-relay"),
        HOST=os.getenv("HOST", "0.0.0.0"),
        PORT=int(os.getenv("PORT", "3001")),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        WS_ALLOWED_ORIGINS=os.getenv(
            "WS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ),
        ROOM_CODE_LENGTH=int(os.getenv("ROOM_CODE_LENGTH", "6")),
        ROOM_GRACE_SEC=float(os.getenv("ROOM_GRACE_SEC", "120")),
        SWEEP_INTERVAL_SEC=float(os.getenv("SWEEP_INTERVAL_SEC", "300")),
    )
