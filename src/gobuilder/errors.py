"""Exception hierarchy shared by the builder components."""

from __future__ import annotations


class GoBuilderError(RuntimeError):
    """Base class for failures that stop the builder."""


__all__ = ["GoBuilderError"]
