"""Go-style duration parsing and formatting."""

from __future__ import annotations

import math
import re
from datetime import timedelta

# Multipliers into microseconds, the resolution of ``timedelta``.
_UNITS = {
    "ns": 1e-3,
    "us": 1.0,
    "µs": 1.0,
    "μs": 1.0,
    "ms": 1e3,
    "s": 1e6,
    "m": 60e6,
    "h": 3600e6,
}

_TOKEN = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text: str) -> timedelta:
    """Parse ``30s``, ``1m30s``, ``250ms`` or a bare number of seconds."""

    value = text.strip()
    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        if not math.isfinite(seconds):
            raise ValueError(f"invalid duration {text!r}")
        try:
            return timedelta(seconds=seconds)
        except OverflowError as exc:
            raise ValueError(f"invalid duration {text!r}") from exc

    sign = 1
    if value[:1] in {"+", "-"}:
        sign = -1 if value[0] == "-" else 1
        value = value[1:]
    if not value:
        raise ValueError(f"invalid duration {text!r}")

    total = 0.0
    position = 0
    while position < len(value):
        match = _TOKEN.match(value, position)
        if match is None:
            raise ValueError(f"invalid duration {text!r}")
        total += float(match.group(1)) * _UNITS[match.group(2)]
        position = match.end()
    try:
        return timedelta(microseconds=sign * total)
    except OverflowError as exc:
        raise ValueError(f"invalid duration {text!r}") from exc


def _with_fraction(value: int, unit: int) -> str:
    whole, fraction = divmod(value, unit)
    if not fraction:
        return str(whole)
    digits = len(str(unit)) - 1
    return f"{whole}.{fraction:0{digits}d}".rstrip("0")


def format_duration(value: timedelta) -> str:
    """Render ``value`` the way Go prints a ``time.Duration``."""

    micros = (value.days * 86_400 + value.seconds) * 1_000_000 + value.microseconds
    if micros == 0:
        return "0s"
    sign = "-" if micros < 0 else ""
    micros = abs(micros)

    if micros < 1_000:
        return f"{sign}{micros}µs"
    if micros < 1_000_000:
        return f"{sign}{_with_fraction(micros, 1_000)}ms"

    hours, remainder = divmod(micros, 3_600_000_000)
    minutes, remainder = divmod(remainder, 60_000_000)
    seconds = _with_fraction(remainder, 1_000_000)
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"


__all__ = ["format_duration", "parse_duration"]
