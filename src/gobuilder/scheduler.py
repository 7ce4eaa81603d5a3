"""The update loop: pull, compare, rebuild when stale, repeat."""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Awaitable, Callable

from .build import BuildInvoker
from .config import BuilderSettings
from .process import CommandRunner
from .sync import SourceSynchronizer
from .version import VersionComparator

logger = logging.getLogger(__name__)


class SchedulerState(enum.Enum):
    RUNNING_CYCLE = "running_cycle"
    WAITING_FOR_TICK = "waiting_for_tick"


@dataclass(slots=True)
class CycleReport:
    """Outcome of one pull/compare/build cycle."""

    update_needed: bool
    sync_elapsed: timedelta
    build_elapsed: timedelta | None = None

    @property
    def built(self) -> bool:
        return self.build_elapsed is not None


class Scheduler:
    """Runs one cycle immediately, then one per tick of a fixed-rate timer.

    Ticks fall on ``armed_at + k * update_rate``. Cycles run inline, so they
    never overlap: if ticks fire while a cycle is running, the next cycle
    starts as soon as it finishes and the remaining missed ticks are dropped.
    Errors raised by a collaborator propagate out of :meth:`run_forever`.
    """

    def __init__(
        self,
        settings: BuilderSettings,
        *,
        synchronizer: SourceSynchronizer,
        comparator: VersionComparator,
        builder: BuildInvoker,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._synchronizer = synchronizer
        self._comparator = comparator
        self._builder = builder
        self._clock = clock
        self._sleep = sleep
        self._state = SchedulerState.RUNNING_CYCLE

    @classmethod
    def from_settings(
        cls, settings: BuilderSettings, runner: CommandRunner | None = None
    ) -> "Scheduler":
        runner = runner or CommandRunner()
        return cls(
            settings,
            synchronizer=SourceSynchronizer(settings, runner),
            comparator=VersionComparator(settings, runner),
            builder=BuildInvoker(settings, runner),
        )

    @property
    def state(self) -> SchedulerState:
        return self._state

    async def run_cycle(self) -> CycleReport:
        self._state = SchedulerState.RUNNING_CYCLE
        sync_elapsed = await self._synchronizer.sync()
        if not await self._comparator.is_update_needed():
            logger.info("no update needed")
            return CycleReport(update_needed=False, sync_elapsed=sync_elapsed)
        build_elapsed = await self._builder.build()
        return CycleReport(update_needed=True, sync_elapsed=sync_elapsed, build_elapsed=build_elapsed)

    async def run_forever(self, *, max_cycles: int | None = None) -> int:
        """Run cycles until one raises, or until ``max_cycles`` have completed.

        Returns the number of completed cycles, which only happens when
        ``max_cycles`` is given.
        """

        interval = self._settings.update_rate.total_seconds()
        await self.run_cycle()
        completed = 1

        tick = self._clock()
        while max_cycles is None or completed < max_cycles:
            now = self._clock()
            due = tick + interval
            if now < due:
                self._state = SchedulerState.WAITING_FOR_TICK
                await self._sleep(due - now)
                tick = due
            else:
                # Missed ticks collapse into a single immediate cycle.
                skipped = int((now - due) // interval)
                if skipped:
                    logger.debug("Dropping %d missed tick(s)", skipped)
                tick = due + skipped * interval
            await self.run_cycle()
            completed += 1
        return completed


__all__ = ["CycleReport", "Scheduler", "SchedulerState"]
