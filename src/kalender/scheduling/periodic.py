"""
Periodic background task base

Each periodic task runs as its own asyncio task at a fixed rate. A failing
tick is logged and the schedule continues. Stopping signals the loop and
waits for it, so a tick that is already running finishes instead of being
cancelled halfway through.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class PeriodicTask(ABC):
    """Runs ``tick()`` every ``interval`` seconds after ``initial_delay``"""

    def __init__(self, name: str, interval: float, initial_delay: float = 0.0):
        if interval <= 0:
            raise ValueError("interval must be positive")
        if initial_delay < 0:
            raise ValueError("initial_delay must be non-negative")

        self.name = name
        self.interval = interval
        self.initial_delay = initial_delay

        self.running = False
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

        self.metrics: Dict[str, Any] = {
            "ticks": 0,
            "failures": 0,
            "last_run": None,
            "last_error": None,
        }

    @abstractmethod
    async def tick(self) -> Any:
        """One unit of periodic work"""
        pass

    async def start(self) -> None:
        """Start the background loop"""
        if self.running:
            return

        self.running = True
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run_loop(), name=f"kalender-{self.name}")
        logger.info(
            f"Started {self.name} (every {self.interval:g}s, first run in {self.initial_delay:g}s)"
        )

    async def stop(self) -> None:
        """Stop scheduling new ticks and wait for a running tick to finish"""
        if not self.running:
            return

        self.running = False
        self._stop_event.set()

        if self._task:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info(f"Stopped {self.name}")

    async def run_once(self) -> Any:
        """Run a single tick now; failures are logged, never raised"""
        self.metrics["last_run"] = datetime.now()
        try:
            result = await self.tick()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.metrics["failures"] += 1
            self.metrics["last_error"] = str(e)
            logger.error(f"{self.name} tick failed: {e}")
            return None

        self.metrics["ticks"] += 1
        return result

    async def _run_loop(self) -> None:
        loop = asyncio.get_running_loop()
        next_run = loop.time() + self.initial_delay

        while True:
            delay = next_run - loop.time()
            if delay > 0:
                if await self._wait_for_stop(delay):
                    break
            elif self._stop_event.is_set():
                break

            await self.run_once()

            # Fixed rate; an overrunning tick pushes the next one back, never overlaps it
            next_run = max(next_run + self.interval, loop.time())

    async def _wait_for_stop(self, timeout: float) -> bool:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout)
            return True
        except asyncio.TimeoutError:
            return False
