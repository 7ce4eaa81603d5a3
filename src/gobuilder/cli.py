"""Command-line entry point for the Go builder daemon."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from pydantic import ValidationError

from .config import BuilderSettings
from .durations import format_duration
from .errors import GoBuilderError
from .process import CommandRunner
from .scheduler import Scheduler
from .version import VersionComparator

logger = logging.getLogger(__name__)

# Status used after a print flag, kept non-zero for existing wrapper scripts.
EXIT_PRINTED = 1
EXIT_USAGE = 2
EXIT_FATAL = 255
EXIT_INTERRUPTED = 130


def configure_logging(level: str) -> None:
    """Configure root logging for the builder."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gobuilder",
        description="Keep a Go checkout pulled and rebuild it whenever HEAD moves.",
    )
    parser.add_argument(
        "-v",
        "--print-version",
        action="store_true",
        help="Print the revision of the installed toolchain and exit",
    )
    parser.add_argument(
        "-p",
        "--print-executable-path",
        action="store_true",
        help="Print the path of the go executable that is inspected and exit",
    )
    parser.add_argument(
        "-r",
        "--root",
        default=None,
        help="Go root directory (default: /src/go, env GOBUILDER_ROOT)",
    )
    parser.add_argument(
        "-c",
        "--toolchain",
        default=None,
        help="Bootstrap toolchain (default: /src/go-linux-amd64-bootstrap/, env GOBUILDER_TOOLCHAIN)",
    )
    parser.add_argument(
        "-t",
        "--interval",
        dest="update_rate",
        default=None,
        help="Time to wait between updates, e.g. 30s or 5m (default: 30s, env GOBUILDER_UPDATE_RATE)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: INFO, env GOBUILDER_LOG_LEVEL)",
    )
    return parser


async def _print_requested(
    args: argparse.Namespace, settings: BuilderSettings, runner: CommandRunner
) -> None:
    if args.print_executable_path:
        print(settings.go_binary)
    if args.print_version:
        revision = await VersionComparator(settings, runner).built_revision()
        print(revision, end="")
        sys.stdout.flush()


async def _serve(settings: BuilderSettings, runner: CommandRunner) -> None:
    logger.info("started go builder with rate of %s", format_duration(settings.update_rate))
    await Scheduler.from_settings(settings, runner).run_forever()


def run(argv: list[str] | None = None, *, runner: CommandRunner | None = None) -> int:
    """Parse ``argv`` and run the builder, returning the process exit status.

    Only returns for the print flags and on failure; otherwise the update loop
    runs until the process is killed.
    """

    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = BuilderSettings.from_args(args)
    except ValidationError as exc:
        parser.error(str(exc))

    configure_logging(settings.log_level)
    runner = runner or CommandRunner()

    try:
        if args.print_version or args.print_executable_path:
            asyncio.run(_print_requested(args, settings, runner))
            return EXIT_PRINTED
        asyncio.run(_serve(settings, runner))
    except GoBuilderError as exc:
        logger.error("%s", exc)
        return EXIT_FATAL
    except KeyboardInterrupt:
        logger.info("interrupted, stopping")
        return EXIT_INTERRUPTED
    return 0


def main(argv: list[str] | None = None) -> None:
    exit_code = run(argv)
    if exit_code:
        raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
