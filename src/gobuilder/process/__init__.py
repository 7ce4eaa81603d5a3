"""External command orchestration utilities."""

from .runner import (
    CommandError,
    CommandFailedError,
    CommandLaunchError,
    CommandResult,
    CommandRunner,
    FakeCommandRunner,
    Invocation,
)
from .utils import build_environment

__all__ = [
    "CommandError",
    "CommandFailedError",
    "CommandLaunchError",
    "CommandResult",
    "CommandRunner",
    "FakeCommandRunner",
    "Invocation",
    "build_environment",
]
