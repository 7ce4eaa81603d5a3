"""Detect whether the installed toolchain lags behind the checkout."""

from __future__ import annotations

import logging
import re

from .config import BuilderSettings
from .errors import GoBuilderError
from .process import CommandRunner

logger = logging.getLogger(__name__)

# ``go version`` output for a toolchain built from a source checkout, e.g.
# ``go version devel +abcdef1 Mon Jan 1 00:00:00 2024 +0000 linux/amd64``.
VERSION_PATTERN = re.compile(r"go version devel \+(\w+) .+ \w+/\w+", re.ASCII)


class UnknownVersionError(GoBuilderError):
    """Raised when ``go version`` output does not carry a devel revision."""


def parse_version(output: str) -> str:
    """Return the revision embedded in ``go version`` output."""

    match = VERSION_PATTERN.search(output)
    if match is None:
        raise UnknownVersionError(f"Unknown version: {output.strip()!r}")
    return match.group(1)


def revisions_differ(built: str, checkout: str) -> bool:
    return built != checkout


class VersionComparator:
    """Compares the built toolchain's revision with the checkout's HEAD."""

    def __init__(self, settings: BuilderSettings, runner: CommandRunner) -> None:
        self._settings = settings
        self._runner = runner

    async def built_revision(self) -> str:
        result = await self._runner.capture(
            str(self._settings.go_binary), "version", cwd=self._settings.root
        )
        return parse_version(result.stdout)

    async def checkout_revision(self) -> str:
        result = await self._runner.capture(
            "git", "rev-parse", "--short", "HEAD", cwd=self._settings.root
        )
        return result.stdout.strip()

    async def is_update_needed(self) -> bool:
        built = await self.built_revision()
        checkout = await self.checkout_revision()
        logger.debug("Built revision %s, checkout revision %s", built, checkout)
        return revisions_differ(built, checkout)


__all__ = [
    "UnknownVersionError",
    "VERSION_PATTERN",
    "VersionComparator",
    "parse_version",
    "revisions_differ",
]
