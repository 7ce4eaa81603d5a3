"""Rebuild the toolchain from the checkout."""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import Callable

from .config import BuilderSettings
from .durations import format_duration
from .process import CommandRunner, build_environment

logger = logging.getLogger(__name__)

BOOTSTRAP_VARIABLE = "GOROOT_BOOTSTRAP"
BUILD_COMMAND = ("/bin/bash", "make.bash")


class BuildInvoker:
    """Runs ``make.bash`` from ``<root>/src`` against the bootstrap toolchain.

    The script inherits our stdin, stdout and stderr so the operator sees the
    build as it happens; nothing is captured.
    """

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

    def environment(self) -> dict[str, str]:
        return build_environment({BOOTSTRAP_VARIABLE: str(self._settings.toolchain)})

    async def build(self) -> timedelta:
        start = self._clock()
        await self._runner.passthrough(
            *BUILD_COMMAND, cwd=self._settings.build_dir, env=self.environment()
        )
        elapsed = timedelta(seconds=self._clock() - start)
        logger.info("built in %s", format_duration(elapsed))
        return elapsed


__all__ = ["BOOTSTRAP_VARIABLE", "BUILD_COMMAND", "BuildInvoker"]
