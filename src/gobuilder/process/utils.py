"""Utility helpers for the command runner."""

from __future__ import annotations

import os
from typing import Mapping


def build_environment(additional: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return the inherited environment with ``additional`` laid over it."""

    env = dict(os.environ)
    if additional:
        env.update(additional)
    return env


def describe_command(args: tuple[str, ...] | list[str]) -> str:
    return " ".join(args)
