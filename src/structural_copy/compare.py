"""Structural comparison of visible state, used to check copies."""
# ruff: noqa: ANN401

from __future__ import annotations

import collections
import types
from typing import TYPE_CHECKING, Any, cast

from .categories import (
    carries_instance_state,
    has_attribute_state,
    is_immutable,
    is_shared,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
else:  # pragma: no cover - provide runtime aliases for introspection tools
    import collections.abc as _abc

    Iterable = _abc.Iterable
    Sequence = _abc.Sequence

Path = tuple[str, ...]
Difference = tuple[Path, str]

_EMPTY = object()

__all__ = ["Difference", "Path", "first_difference"]


def _describe_collection(items: Iterable[Any]) -> str:
    return "[" + ", ".join(sorted(repr(item) for item in items)) + "]"


def _shorten(text: str) -> str:
    if len(text) > 200:
        return f"{text[:197]}..."
    return text


def _compare_sequence(
    seq_a: Sequence[Any], seq_b: Sequence[Any], path: Path
) -> Difference | None:
    if len(seq_a) != len(seq_b):
        return (*path, "<len>"), f"{len(seq_a)} -> {len(seq_b)}"
    for index, (left, right) in enumerate(zip(seq_a, seq_b, strict=True)):
        diff = first_difference(left, right, (*path, f"[{index}]"))
        if diff:
            return diff
    return None


def _compare_members(
    members_a: set[object], members_b: set[object], path: Path
) -> Difference | None:
    if members_a != members_b:
        removed_desc = _describe_collection(members_a - members_b)
        added_desc = _describe_collection(members_b - members_a)
        return path, f"set changed; -{removed_desc} +{added_desc}"
    return None


def _visible_state(obj: object) -> dict[str, Any]:
    """Return the public attributes of ``obj`` from ``__slots__`` and ``__dict__``."""
    state: dict[str, Any] = {}
    for base in reversed(type(obj).__mro__):
        slots = vars(base).get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name.startswith("_"):
                continue
            try:
                state[name] = object.__getattribute__(obj, name)
            except AttributeError:
                continue
    for name, value in getattr(obj, "__dict__", {}).items():
        if not name.startswith("_"):
            state[name] = value
    return state


def _compare_cells(
    a: types.CellType, b: types.CellType, path: Path
) -> Difference | None:
    try:
        left = a.cell_contents
    except ValueError:
        left = _EMPTY
    try:
        right = b.cell_contents
    except ValueError:
        right = _EMPTY
    if left is _EMPTY or right is _EMPTY:
        if left is right:
            return None
        return (*path, "<cell>"), "cell emptiness changed"
    return first_difference(left, right, (*path, "<cell>"))


def first_difference(a: Any, b: Any, path: Path = ()) -> Difference | None:
    """Return the first difference between ``a`` and ``b`` (if any).

    Only visible state is compared: instance members whose names start with an
    underscore are ignored, matching what a structural copy carries over. Both
    values must be acyclic.
    """
    if type(a) is not type(b):
        return path, f"type {type(a).__name__} -> {type(b).__name__}"

    if isinstance(a, dict):
        a_dict = cast("dict[object, object]", a)
        b_dict = cast("dict[object, object]", b)
        a_keys: set[object] = set(a_dict.keys())
        b_keys: set[object] = set(b_dict.keys())
        if a_keys != b_keys:
            missing = a_keys - b_keys
            added = b_keys - a_keys
            if missing:
                return (
                    *path,
                    "<dict-keys>",
                ), f"missing keys {_describe_collection(missing)}"
            return (
                *path,
                "<dict-keys>",
            ), f"added keys {_describe_collection(added)}"
        for key in a_dict:
            diff = first_difference(a_dict[key], b_dict[key], (*path, f"[{key!r}]"))
            if diff:
                return diff
        return None

    if isinstance(a, list | tuple | collections.deque):
        diff = _compare_sequence(
            cast("Sequence[Any]", a), cast("Sequence[Any]", b), path
        )
        if diff:
            return diff
        return _compare_attributes(a, b, path)

    if isinstance(a, set | frozenset):
        return _compare_members(
            set(cast("Iterable[object]", a)), set(cast("Iterable[object]", b)), path
        )

    if isinstance(a, types.CellType):
        return _compare_cells(a, b, path)

    if is_immutable(a) and carries_instance_state(a):
        return _compare_values(a, b, path) or _compare_attributes(a, b, path)

    if is_immutable(a) or is_shared(a) or not has_attribute_state(a):
        return _compare_values(a, b, path)

    return _compare_attributes(a, b, path)


def _compare_attributes(a: object, b: object, path: Path) -> Difference | None:
    a_state = _visible_state(a)
    b_state = _visible_state(b)
    if not a_state and not b_state:
        return None
    if a_state.keys() != b_state.keys():
        removed = sorted(a_state.keys() - b_state.keys())
        added = sorted(b_state.keys() - a_state.keys())
        return (*path, "<attributes>"), f"attributes changed; -{removed} +{added}"
    for name, left in a_state.items():
        diff = first_difference(left, b_state[name], (*path, f".{name}"))
        if diff:
            return diff
    return None


def _compare_values(a: object, b: object, path: Path) -> Difference | None:
    if a != b:
        return path, f"value {_shorten(repr(a))} -> {_shorten(repr(b))}"
    return None
