"""Tunable thresholds and extension registries for the copier."""
# ruff: noqa: ANN401

from __future__ import annotations

import dataclasses
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Final

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
else:  # pragma: no cover - provide runtime aliases for introspection tools
    import collections.abc as _abc

    Callable = _abc.Callable
    Mapping = _abc.Mapping

DEFAULT_DETECT_CYCLES_AFTER: Final = 1000
DEFAULT_MAX_CHAIN_LENGTH: Final = 1500

__all__ = [
    "DEFAULT_DETECT_CYCLES_AFTER",
    "DEFAULT_MAX_CHAIN_LENGTH",
    "CopyConfig",
]


@dataclasses.dataclass(frozen=True, slots=True)
class CopyConfig:
    """Settings shared by every copy performed with a :class:`Copier`.

    Parameters
    ----------
    detect_cycles_after : int
        Depth past which reference identities are tracked along the current
        path. ``0`` tracks every guarded node.
    max_chain_length : int
        Hard ceiling on traversal depth.
    shared_types : tuple[type, ...]
        Extra types whose values are shared with the copy instead of cloned.
    copiers : Mapping[type, Callable[[Any], Any]]
        Per-type copy functions that replace generic traversal, matched along
        the value's MRO.
    honor_deepcopy_protocol : bool
        When ``True`` a class-level ``__deepcopy__`` is used as a custom hook.
    """

    detect_cycles_after: int = DEFAULT_DETECT_CYCLES_AFTER
    max_chain_length: int = DEFAULT_MAX_CHAIN_LENGTH
    shared_types: tuple[type, ...] = ()
    copiers: Mapping[type, Callable[[Any], Any]] = dataclasses.field(
        default_factory=dict
    )
    honor_deepcopy_protocol: bool = True

    def __post_init__(self) -> None:
        if self.max_chain_length < 1:
            raise ValueError(
                f"max_chain_length must be at least 1, got {self.max_chain_length}"
            )
        if self.detect_cycles_after < 0:
            raise ValueError(
                "detect_cycles_after must not be negative, "
                f"got {self.detect_cycles_after}"
            )
        object.__setattr__(self, "shared_types", tuple(self.shared_types))
        object.__setattr__(self, "copiers", MappingProxyType(dict(self.copiers)))

    def find_copier(self, cls: type) -> Callable[[Any], Any] | None:
        """Return the registered copy function for ``cls`` or its nearest base."""
        if not self.copiers:
            return None
        for base in cls.__mro__:
            copier = self.copiers.get(base)
            if copier is not None:
                return copier
        return None
