"""Periodic expiry of idle proctoring sessions."""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from ..models.session import ProctoringSession
from .registry import SessionRegistry

logger = logging.getLogger(__name__)


class SweepScheduler:
    """Runs ``registry.sweep`` on a fixed interval in a background task."""

    def __init__(self, registry: SessionRegistry, interval: float,
                 clock: Callable[[], float] = time.time):
        self.registry = registry
        self.interval = interval
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> List[ProctoringSession]:
        expired = self.registry.sweep(self.clock())
        if expired:
            logger.info(f"[SWEEP] expired {len(expired)} session(s), {len(self.registry)} remaining")
        return expired

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"[SWEEP] started (every {self.interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("[SWEEP] stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"[SWEEP ERROR] {e}")
