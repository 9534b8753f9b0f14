"""Exception types raised by indexclone."""

from __future__ import annotations

from typing import Any


class IndexCloneError(Exception):
    """Base class for indexclone errors."""


class PaginationError(IndexCloneError):
    """Keyset pagination cannot continue past the current query.

    Raised when the boundary document has no usable ordering value, or when a
    whole result window shares one ordering value so the lower bound cannot move.
    """

    def __init__(self, message: str, field: str | None = None, value: Any = None) -> None:
        super().__init__(message)
        self.field = field
        self.value = value
        # Totals of the aborted run, set by the Migrator
        self.report: Any = None


class ArgumentError(IndexCloneError, ValueError):
    """Malformed command-line invocation."""


class ConfigError(IndexCloneError, ValueError):
    """Invalid configuration value."""
