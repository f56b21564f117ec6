"""Exceptions raised when a structural copy cannot be completed."""

from __future__ import annotations

__all__ = [
    "ChainTooLongError",
    "CircularReferenceError",
    "CopyError",
    "UnexpectedCopyError",
]


class CopyError(RuntimeError):
    """Base class for every failure surfaced by the copier.

    ``type_name`` names the type being processed when the failure happened.
    """

    def __init__(self, message: str, *, type_name: str) -> None:
        super().__init__(message)
        self.type_name = type_name


class ChainTooLongError(CopyError):
    """The traversal went deeper than the configured ceiling."""

    def __init__(self, type_name: str, limit: int) -> None:
        super().__init__(
            f"excessive reference chain happened via {type_name} (limit {limit})",
            type_name=type_name,
        )
        self.limit = limit


class CircularReferenceError(CopyError):
    """The same reference was met twice on the current path."""

    def __init__(self, type_name: str) -> None:
        super().__init__(
            f"encountered a circular reference via {type_name}", type_name=type_name
        )


class UnexpectedCopyError(CopyError):
    """Any other failure raised while copying, converted at the entry point."""

    def __init__(self, type_name: str, reason: str) -> None:
        super().__init__(
            f"unexpected failure while copying {type_name}: {reason}",
            type_name=type_name,
        )
        self.reason = reason
