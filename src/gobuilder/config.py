"""Configuration management for the Go builder."""

from __future__ import annotations

import argparse
from datetime import timedelta
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .durations import parse_duration

DEFAULT_ROOT = Path("/src/go")
DEFAULT_TOOLCHAIN = Path("/src/go-linux-amd64-bootstrap/")
DEFAULT_UPDATE_RATE = timedelta(seconds=30)


class BuilderSettings(BaseSettings):
    """Runtime configuration built once from launch arguments and the environment.

    Launch arguments take precedence over ``GOBUILDER_*`` environment variables,
    which take precedence over the defaults. Instances are frozen.
    """

    model_config = SettingsConfigDict(env_prefix="GOBUILDER_", extra="ignore", frozen=True)

    root: Path = Field(default=DEFAULT_ROOT, description="Checkout of the tracked source tree.")
    toolchain: Path = Field(
        default=DEFAULT_TOOLCHAIN,
        description=(
            "Prebuilt toolchain exported to the build as GOROOT_BOOTSTRAP. "
            "Held as a Path, so a trailing slash is dropped from the exported value."
        ),
    )
    update_rate: timedelta = Field(
        default=DEFAULT_UPDATE_RATE, description="Time to wait between update cycles."
    )
    log_level: str = Field(default="INFO")

    @field_validator("root", "toolchain")
    @classmethod
    def _expand_path(cls, value: Path) -> Path:
        return value.expanduser()

    @field_validator("update_rate", mode="before")
    @classmethod
    def _parse_update_rate(cls, value):
        if isinstance(value, str):
            return parse_duration(value)
        return value

    @field_validator("update_rate")
    @classmethod
    def _validate_update_rate(cls, value: timedelta) -> timedelta:
        if value <= timedelta(0):
            raise ValueError("update rate must be a positive duration")
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "GOBUILDER_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @property
    def go_binary(self) -> Path:
        """The toolchain binary whose ``version`` output is inspected."""

        return self.root / "bin" / "go"

    @property
    def build_dir(self) -> Path:
        return self.root / "src"

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "BuilderSettings":
        """Build settings, overriding only the options given on the command line."""

        overrides = {
            name: getattr(args, name)
            for name in ("root", "toolchain", "update_rate", "log_level")
            if getattr(args, name, None) is not None
        }
        return cls(**overrides)


__all__ = ["BuilderSettings", "DEFAULT_ROOT", "DEFAULT_TOOLCHAIN", "DEFAULT_UPDATE_RATE"]
