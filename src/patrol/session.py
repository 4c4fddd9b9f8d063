from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

from floorplan.world import WorldConfig
from incidents.store import EventStore

from .robot import Robot
from .simulator import PatrolSimulator

logger = logging.getLogger(__name__)


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


class SimulationSession:
    """
    Drives a PatrolSimulator on the running asyncio loop.

    Each tick reads one EventStore snapshot. stop() cancels the loop task and
    invalidates in-flight world reloads, so nothing mutates the simulator
    after it returns.
    """

    def __init__(
        self,
        simulator: PatrolSimulator,
        store: EventStore,
        *,
        tick_ms: Optional[int] = None,
        clock: Callable[[], int] = wall_clock_ms,
    ):
        self.simulator = simulator
        self.store = store
        self.tick_ms = tick_ms if tick_ms is not None else simulator.tick_ms
        self.clock = clock

        self._task: Optional[asyncio.Task] = None
        self._running = False
        self._generation = 0          # bumped by stop(); stale reloads compare against it

    @property
    def running(self) -> bool:
        return self._running

    @property
    def robots(self) -> tuple[Robot, ...]:
        return self.simulator.robots

    def tick_once(self) -> tuple[Robot, ...]:
        return self.simulator.tick(self.store.snapshot(), self.clock())

    def run_ticks(self, n: int) -> tuple[Robot, ...]:
        """Run n ticks back to back without waiting (headless mode, tests)."""
        if not self.simulator.robots:
            self.simulator.spawn_robots()
        for _ in range(max(0, n)):
            self.tick_once()
        return self.simulator.robots

    async def start(self) -> None:
        if self._running:
            return
        if not self.simulator.robots:
            self.simulator.spawn_robots()
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("Simulation started: %d robots, tick=%dms", len(self.simulator.robots), self.tick_ms)

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self._generation += 1

        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("Simulation stopped after %d ticks", self.simulator.tick_count)

    async def _loop(self) -> None:
        interval = self.tick_ms / 1000.0
        while self._running:
            try:
                self.tick_once()
            except Exception:
                logger.exception("Simulation tick failed; continuing")
            await asyncio.sleep(interval)

    async def reload_world(self, loader: Callable[[], WorldConfig]) -> Optional[WorldConfig]:
        """
        Load a new world off the event loop and rebind the simulator to it.

        Returns None when the session was stopped while the load was running;
        the loaded world is discarded in that case.
        """
        generation = self._generation
        world = await asyncio.to_thread(loader)
        if generation != self._generation:
            logger.info("Discarding world reload that finished after stop()")
            return None
        self.simulator.rebind_world(world)
        logger.info("World reloaded: %d zones", len(world.zones))
        return world
