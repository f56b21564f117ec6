"""Custom copy hooks that let a type replace generic traversal."""
# ruff: noqa: ANN401

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable

    from .config import CopyConfig

__all__ = ["SupportsDeepCopy", "find_hook"]


@runtime_checkable
class SupportsDeepCopy(Protocol):
    """Values that produce their own deep copy.

    The copier calls ``deep_copy`` instead of walking the value and uses the
    result verbatim, even when it shares state with the original.
    """

    def deep_copy(self) -> object: ...


def _deepcopy_protocol(
    hook: Callable[[Any, dict[int, object]], Any],
) -> Callable[[Any], Any]:
    """Adapt a ``__deepcopy__(memo)`` method to a one-argument hook."""

    def call(value: Any) -> Any:
        return hook(value, {})

    return call


def find_hook(value: object, config: CopyConfig) -> Callable[[Any], Any] | None:
    """Return the hook that copies ``value``, or ``None`` for generic traversal.

    Hooks are looked up on the type, never on the instance, so classes that
    happen to define ``deep_copy`` are not mistaken for copyable values. A
    type opts in by satisfying :class:`SupportsDeepCopy`.
    """
    cls = type(value)
    registered = config.find_copier(cls)
    if registered is not None:
        return registered
    if issubclass(cls, SupportsDeepCopy) and callable(cls.deep_copy):
        return cls.deep_copy
    if config.honor_deepcopy_protocol:
        legacy = getattr(cls, "__deepcopy__", None)
        if callable(legacy):
            return _deepcopy_protocol(legacy)
    return None
