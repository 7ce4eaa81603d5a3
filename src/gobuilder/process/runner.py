"""Async runner for the external commands the builder shells out to."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from ..errors import GoBuilderError
from .utils import describe_command

logger = logging.getLogger(__name__)


class CommandError(GoBuilderError):
    """Base class for command runner errors."""

    def __init__(self, message: str, args: tuple[str, ...]) -> None:
        super().__init__(message)
        self.command = args


class CommandLaunchError(CommandError):
    """Raised when a command's executable cannot be started."""

    def __init__(self, args: tuple[str, ...], cause: OSError) -> None:
        super().__init__(f"command {describe_command(args)} could not be started: {cause}", args)
        self.cause = cause


class CommandFailedError(CommandError):
    """Raised when a command exits non-zero or is killed by a signal."""

    def __init__(self, result: "CommandResult") -> None:
        if result.returncode < 0:
            outcome = f"was terminated by signal {-result.returncode}"
        else:
            outcome = f"exited with status {result.returncode}"
        super().__init__(f"command {describe_command(result.args)} {outcome}", result.args)
        self.result = result


@dataclass(slots=True)
class CommandResult:
    """Holds the outcome of a single command invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner:
    """Execute commands asynchronously, one at a time.

    ``capture`` collects stdout and leaves stderr attached to ours.
    ``passthrough`` leaves all three streams attached, for commands whose
    output the operator should watch live (``git pull``, the build script).
    """

    async def capture(
        self,
        *args: str,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
    ) -> CommandResult:
        result = await self._invoke(tuple(args), cwd=cwd, env=env, capture=True)
        return self._finish(result, check)

    async def passthrough(
        self,
        *args: str,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
    ) -> CommandResult:
        result = await self._invoke(tuple(args), cwd=cwd, env=env, capture=False)
        return self._finish(result, check)

    @staticmethod
    def _finish(result: CommandResult, check: bool) -> CommandResult:
        if check and not result.ok:
            raise CommandFailedError(result)
        return result

    async def _invoke(
        self,
        args: tuple[str, ...],
        *,
        cwd: Path | None,
        env: Mapping[str, str] | None,
        capture: bool,
    ) -> CommandResult:
        logger.debug("Running %s in %s", describe_command(args), cwd or ".")
        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                cwd=str(cwd) if cwd is not None else None,
                env=dict(env) if env is not None else None,
                stdin=asyncio.subprocess.DEVNULL if capture else None,
                stdout=asyncio.subprocess.PIPE if capture else None,
            )
        except OSError as exc:
            raise CommandLaunchError(args, exc) from exc

        if capture:
            stdout_bytes, _ = await process.communicate()
            stdout = stdout_bytes.decode("utf-8", errors="replace")
        else:
            await process.wait()
            stdout = ""
        return CommandResult(args=args, returncode=process.returncode, stdout=stdout)


@dataclass(slots=True)
class Invocation:
    """One call recorded by :class:`FakeCommandRunner`."""

    args: tuple[str, ...]
    cwd: Path | None
    env: dict[str, str] | None
    capture: bool


@dataclass(slots=True)
class _Script:
    prefix: tuple[str, ...]
    outcome: CommandResult | BaseException


class FakeCommandRunner(CommandRunner):
    """Test double that replays canned command outcomes.

    Outcomes are keyed by argv prefix; the longest matching prefix wins.
    Unscripted commands succeed with empty output.
    """

    def __init__(
        self,
        scripts: Mapping[tuple[str, ...], CommandResult | BaseException | str | int] | None = None,
    ) -> None:
        self._scripts: list[_Script] = []
        self._invocations: list[Invocation] = []
        for prefix, outcome in (scripts or {}).items():
            self.script(prefix, outcome)

    def script(
        self,
        prefix: tuple[str, ...],
        outcome: CommandResult | BaseException | str | int,
    ) -> None:
        """Register the outcome for commands starting with ``prefix``.

        A string is shorthand for a successful run printing it, an int for a
        run exiting with that status.
        """

        prefix = tuple(prefix)
        if isinstance(outcome, str):
            outcome = CommandResult(args=prefix, returncode=0, stdout=outcome)
        elif isinstance(outcome, int):
            outcome = CommandResult(args=prefix, returncode=outcome)
        self._scripts = [item for item in self._scripts if item.prefix != prefix]
        self._scripts.append(_Script(prefix=prefix, outcome=outcome))

    async def _invoke(  # type: ignore[override]
        self,
        args: tuple[str, ...],
        *,
        cwd: Path | None,
        env: Mapping[str, str] | None,
        capture: bool,
    ) -> CommandResult:
        self._invocations.append(
            Invocation(
                args=args,
                cwd=cwd,
                env=dict(env) if env is not None else None,
                capture=capture,
            )
        )
        matches = [item for item in self._scripts if args[: len(item.prefix)] == item.prefix]
        if not matches:
            return CommandResult(args=args, returncode=0)
        outcome = max(matches, key=lambda item: len(item.prefix)).outcome
        if isinstance(outcome, BaseException):
            raise outcome
        return CommandResult(args=args, returncode=outcome.returncode, stdout=outcome.stdout)

    @property
    def invocations(self) -> list[Invocation]:
        return self._invocations

    def calls(self, *prefix: str) -> list[Invocation]:
        """Return the recorded invocations whose argv starts with ``prefix``."""

        return [item for item in self._invocations if item.args[: len(prefix)] == prefix]
