"""Pull upstream changes into the checkout."""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import Callable

from .config import BuilderSettings
from .durations import format_duration
from .process import CommandRunner

logger = logging.getLogger(__name__)


class SourceSynchronizer:
    """Runs ``git pull`` in the checkout with output streamed to the console."""

    def __init__(
        self,
        settings: BuilderSettings,
        runner: CommandRunner,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._runner = runner
        self._clock = clock

    async def sync(self) -> timedelta:
        start = self._clock()
        await self._runner.passthrough("git", "pull", cwd=self._settings.root)
        elapsed = timedelta(seconds=self._clock() - start)
        logger.info("updated (%s)", format_duration(elapsed))
        return elapsed


__all__ = ["SourceSynchronizer"]
