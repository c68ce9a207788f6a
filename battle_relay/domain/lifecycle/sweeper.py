# battle_relay/domain/lifecycle/sweeper.py
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from battle_relay.store.room_registry import RoomRegistry

logger = logging.getLogger(__name__)


class RoomSweeper:
    """
    Periodic backstop for leaked timers and missed close events:
    every `interval_sec` drop rooms whose occupants are all disconnected.
    """

    def __init__(self, registry: RoomRegistry, interval_sec: float = 300) -> None:
        self.registry = registry
        self.interval_sec = interval_sec
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def sweep_once(self) -> int:
        removed = self.registry.sweep_stale()
        if removed:
            logger.info("Sweep removed %d stale room(s): %s", len(removed), ", ".join(removed))
        return len(removed)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_sec)
            try:
                self.sweep_once()
            except Exception:
                logger.exception("Room sweep failed")
