# battle_relay/main.py
from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from battle_relay.domain.lifecycle.sweeper import RoomSweeper
from battle_relay.settings import Settings, get_settings
from battle_relay.store.room_registry import RoomRegistry
from battle_relay.transport.admin import router as admin_router
from battle_relay.transport.ws import router as ws_router

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.APP_NAME)
    allowed_origins = [o.strip() for o in settings.WS_ALLOWED_ORIGINS.split(",") if o.strip()]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials="*" not in allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # registry must exist before the first connection, even without startup events
    app.state.settings = settings
    app.state.registry = RoomRegistry(
        grace_sec=settings.ROOM_GRACE_SEC,
        code_length=settings.ROOM_CODE_LENGTH,
    )
    app.state.sweeper = RoomSweeper(app.state.registry, interval_sec=settings.SWEEP_INTERVAL_SEC)

    @app.on_event("startup")
    async def _startup() -> None:
        app.state.sweeper.start()
        logger.info("%s relay ready on port %d", settings.APP_NAME, settings.PORT)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await app.state.sweeper.stop()

    @app.get("/health")
    async def health():
        registry: RoomRegistry = app.state.registry
        return {"ok": True, "rooms": len(registry)}

    app.include_router(admin_router)
    app.include_router(ws_router)
    return app


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "battle_relay.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


app = create_app()
