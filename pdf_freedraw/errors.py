"""Exception types raised by the freedraw core."""

from __future__ import annotations


class FreedrawError(Exception):
    """Base class for every error raised by this package."""


class PathError(FreedrawError, ValueError):
    """A path was built from invalid segments."""


class PathDecodeError(PathError):
    """Stashed path metadata could not be decoded."""


class StoreError(FreedrawError):
    """The native annotation store refused an operation."""
