"""Structural deep copy of arbitrary object graphs.

A copy reallocates every reachable, mutable, visible piece of state so that
mutating the copy never affects the original. Callables, classes, modules,
channels and similar runtime resources are shared instead of cloned.

The traversal keeps two safety nets:

* a hard ceiling on depth, raising :class:`ChainTooLongError`;
* past a configurable depth, a record of reference identities on the current
  path, raising :class:`CircularReferenceError` when one repeats.

Below the detection depth no identities are recorded, so a shallow cycle
through a guarded container is only stopped by the ceiling.
"""
# ruff: noqa: ANN401

from __future__ import annotations

import array
import collections
import copy
import copyreg
import dataclasses
import logging
import sys
import threading
import types
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Final, TypeVar, cast

from .categories import Category, classify, is_immutable, type_name
from .config import CopyConfig
from .errors import (
    ChainTooLongError,
    CircularReferenceError,
    CopyError,
    UnexpectedCopyError,
)
from .hooks import find_hook

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable, Iterator

_T = TypeVar("_T")

_LOGGER = logging.getLogger(__name__)

# Python frames used per level of depth, with room for hooks.
_FRAMES_PER_LEVEL: Final = 4
_FRAME_MARGIN: Final = 64

_DEFAULT_CONFIG: Final = CopyConfig()

_NO_ARGUMENT_CONTAINERS: Final[tuple[type, ...]] = (
    list,
    dict,
    set,
    bytearray,
    collections.OrderedDict,
    collections.Counter,
)

__all__ = ["Copier", "deep_copy", "try_copy"]


class _RecursionHeadroom:
    """Raise the interpreter recursion limit while copies are running.

    The limit is process wide, so concurrent copies share one raised limit and
    the original value is restored when the last of them finishes.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._active = 0
        self._saved_limit = 0

    @contextmanager
    def reserve(self, frames: int) -> Iterator[None]:
        with self._lock:
            if self._active == 0:
                self._saved_limit = sys.getrecursionlimit()
            self._active += 1
            wanted = self._saved_limit + frames
            if sys.getrecursionlimit() < wanted:
                sys.setrecursionlimit(wanted)
        try:
            yield
        finally:
            with self._lock:
                self._active -= 1
                if self._active == 0:
                    sys.setrecursionlimit(self._saved_limit)


_HEADROOM: Final = _RecursionHeadroom()


@dataclasses.dataclass
class _TraversalState:
    """Bookkeeping owned by a single call to :meth:`Copier.copy`."""

    depth: int = 0
    seen: set[Hashable] = dataclasses.field(default_factory=set)
    tracking_logged: bool = False


def _is_visible(name: str) -> bool:
    return not name.startswith("_")


def _slot_names(cls: type) -> list[str]:
    names: list[str] = []
    for base in reversed(cls.__mro__):
        slots = vars(base).get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name not in ("__dict__", "__weakref__") and name not in names:
                names.append(name)
    return names


def _hidden_default(field: dataclasses.Field[Any]) -> Any:
    if field.default is not dataclasses.MISSING:
        return field.default
    if field.default_factory is not dataclasses.MISSING:
        return field.default_factory()
    return dataclasses.MISSING


def _blank(value: Any) -> Any:
    """Return an empty container of ``type(value)``.

    Subclasses are allocated without running their ``__init__``.
    """
    cls = type(value)
    if cls in _NO_ARGUMENT_CONTAINERS:
        return cls()
    if cls is collections.defaultdict:
        return collections.defaultdict(value.default_factory)
    if cls is collections.deque:
        return collections.deque(maxlen=value.maxlen)
    if isinstance(value, array.array):
        return cls.__new__(cls, value.typecode)
    blank = cls.__new__(cls)
    if isinstance(value, collections.deque):
        collections.deque.__init__(blank, (), value.maxlen)
    elif isinstance(value, collections.defaultdict):
        blank.default_factory = value.default_factory
    return blank


class _Traversal:
    """One walk over a source graph, building its copy bottom-up."""

    def __init__(self, config: CopyConfig) -> None:
        self._config = config
        self._state = _TraversalState()
        self._handlers: dict[Category, Callable[[Any], Any]] = {
            Category.PRIMITIVE: self._copy_primitive,
            Category.TIMESTAMP: self._copy_timestamp,
            Category.FIXED_SEQUENCE: self._copy_fixed_sequence,
            Category.DYNAMIC_SEQUENCE: self._copy_dynamic_sequence,
            Category.ASSOCIATIVE: self._copy_associative,
            Category.REFERENCE: self._copy_reference,
            Category.POLYMORPHIC: self._copy_polymorphic,
            Category.OPAQUE_SHARED: self._share,
        }

    @contextmanager
    def _node(self, value: object) -> Iterator[None]:
        state = self._state
        state.depth += 1
        try:
            if state.depth > self._config.max_chain_length:
                raise ChainTooLongError(
                    type_name(value), self._config.max_chain_length
                )
            yield
        finally:
            state.depth -= 1

    @contextmanager
    def _guard(self, identity: Hashable, value: object) -> Iterator[None]:
        """Track ``identity`` on the current path once past the detection depth."""
        state = self._state
        if state.depth <= self._config.detect_cycles_after:
            yield
            return
        if not state.tracking_logged:
            state.tracking_logged = True
            _LOGGER.debug(
                "Tracking reference identities past depth %d (at %s)",
                self._config.detect_cycles_after,
                type_name(value),
            )
        if identity in state.seen:
            raise CircularReferenceError(type_name(value))
        state.seen.add(identity)
        try:
            yield
        finally:
            state.seen.discard(identity)

    def reconstruct(self, value: Any) -> Any:
        """Return the copy of ``value`` and everything reachable from it."""
        with self._node(value):
            hook = find_hook(value, self._config)
            if hook is not None:
                return hook(value)
            category = classify(value, self._config)
            return self._handlers[category](value)

    def _copy_primitive(self, value: Any) -> Any:
        if is_immutable(value):
            return value
        try:
            return copy.copy(value)
        except (TypeError, copy.Error):
            _LOGGER.debug("Sharing uncopyable %s", type_name(value))
            return value

    def _copy_timestamp(self, value: Any) -> Any:
        # tzinfo stays shared with the source
        return value

    def _share(self, value: Any) -> Any:
        return value

    def _copy_fixed_sequence(self, value: tuple[Any, ...]) -> tuple[Any, ...]:
        items: list[Any] = []
        for item in value:
            items.append(self.reconstruct(item))
        cls = type(value)
        if cls is tuple:
            return tuple(items)
        make = getattr(cls, "_make", None)
        if callable(make):
            result = make(items)
        else:
            result = tuple.__new__(cls, items)
        self._copy_attributes(value, result)
        return cast("tuple[Any, ...]", result)

    def _copy_dynamic_sequence(self, value: Any) -> Any:
        with self._guard((id(value), len(value)), value):
            result = _blank(value)
            if isinstance(value, bytearray | array.array):
                result.extend(value)
            else:
                for item in value:
                    result.append(self.reconstruct(item))
            self._copy_attributes(value, result)
            return result

    def _copy_associative(self, value: Any) -> Any:
        with self._guard(id(value), value):
            if isinstance(value, dict):
                result = _blank(value)
                mapping = cast("dict[Any, Any]", value)
                for key, item in mapping.items():
                    copied_item = self.reconstruct(item)
                    copied_key = self.reconstruct(key)
                    result[copied_key] = copied_item
            elif isinstance(value, frozenset):
                members = [self.reconstruct(member) for member in value]
                cls = type(value)
                result = (
                    frozenset(members)
                    if cls is frozenset
                    else frozenset.__new__(cls, members)
                )
            else:
                result = _blank(value)
                for member in value:
                    result.add(self.reconstruct(member))
            self._copy_attributes(value, result)
            return result

    def _copy_reference(self, value: Any) -> Any:
        with self._guard(id(value), value):
            result = self._allocate(value)
            if result is value:
                return result
            self._copy_record(value, result)
            return result

    def _allocate(self, value: Any) -> Any:
        """Create the instance backing the copy of ``value``.

        The pickle reduce protocol names the constructor and its arguments, so
        state kept outside ``__dict__`` and slots (exception ``args``, the
        value of a ``str`` subclass) survives. The arguments are copied as
        child nodes. Any state the reduction returns is ignored; the visible
        members are filled in by :meth:`_copy_record`.
        """
        cls = type(value)
        try:
            reduced = value.__reduce_ex__(4)
        except (TypeError, copy.Error):
            # not picklable, fall back to a bare instance
            return cls.__new__(cls)
        if isinstance(reduced, str):
            # a module-level singleton
            return value
        create, args = reduced[0], reduced[1]
        if create is copyreg.__newobj__:
            target, newargs = args[0], args[1:]
            if newargs:
                newargs = self.reconstruct(newargs)
            return target.__new__(target, *newargs)
        if create is copyreg.__newobj_ex__:
            target, newargs, kwargs = args
            if newargs or kwargs:
                newargs, kwargs = self.reconstruct((tuple(newargs), dict(kwargs)))
            return target.__new__(target, *newargs, **kwargs)
        if args:
            args = self.reconstruct(tuple(args))
        return create(*args)

    def _copy_polymorphic(self, value: types.CellType) -> types.CellType:
        try:
            contents = value.cell_contents
        except ValueError:
            return types.CellType()
        return types.CellType(self.reconstruct(contents))

    def _copy_record(self, source: Any, target: Any) -> None:
        """Copy the visible members of ``source`` onto ``target`` as one node.

        Hidden members are never copied: a dataclass field with a declared
        default receives it, any other hidden member is left unset.
        """
        with self._node(source):
            done: set[str] = set()
            if dataclasses.is_dataclass(source):
                for field in dataclasses.fields(source):
                    done.add(field.name)
                    if _is_visible(field.name):
                        self._copy_member(source, target, field.name)
                        continue
                    default = _hidden_default(field)
                    if default is not dataclasses.MISSING:
                        object.__setattr__(target, field.name, default)
            for name in _slot_names(type(source)):
                if name not in done:
                    done.add(name)
                    if _is_visible(name):
                        self._copy_member(source, target, name)
            instance_dict = getattr(source, "__dict__", None)
            if instance_dict is not None:
                for name in list(instance_dict):
                    if name not in done and _is_visible(name):
                        self._copy_member(source, target, name)

    def _copy_member(self, source: Any, target: Any, name: str) -> None:
        try:
            member = object.__getattribute__(source, name)
        except AttributeError:
            # unset slot or field
            return
        object.__setattr__(target, name, self.reconstruct(member))

    def _copy_attributes(self, source: Any, target: Any) -> None:
        """Copy visible instance attributes of container subclasses."""
        instance_dict = getattr(source, "__dict__", None)
        if not instance_dict:
            return
        with self._node(source):
            for name in list(instance_dict):
                if _is_visible(name):
                    self._copy_member(source, target, name)


class Copier:
    """Configured entry point producing structurally independent copies.

    A ``Copier`` holds no per-copy state and can be shared between threads;
    every call to :meth:`copy` walks the graph with its own bookkeeping.
    """

    def __init__(self, config: CopyConfig | None = None) -> None:
        self.config = config if config is not None else _DEFAULT_CONFIG

    def copy(self, value: _T) -> _T:
        """Return a structural deep copy of ``value``.

        Raises:
        -------
        ChainTooLongError
            The graph is deeper than ``config.max_chain_length``.
        CircularReferenceError
            A reference repeats on one path past ``config.detect_cycles_after``.
        UnexpectedCopyError
            Anything else failed while copying, including custom hooks.
        """
        if value is None:
            return value
        frames = self.config.max_chain_length * _FRAMES_PER_LEVEL + _FRAME_MARGIN
        try:
            with _HEADROOM.reserve(frames):
                return cast("_T", _Traversal(self.config).reconstruct(value))
        except CopyError as exc:
            _LOGGER.debug("Copy of %s failed: %s", type_name(value), exc)
            raise
        except Exception as exc:
            _LOGGER.debug(
                "Copy of %s failed unexpectedly", type_name(value), exc_info=True
            )
            raise UnexpectedCopyError(type_name(value), repr(exc)) from exc

    def try_copy(self, value: _T) -> tuple[_T | None, CopyError | None]:
        """Return ``(copy, None)`` on success or ``(None, error)`` on failure."""
        try:
            return self.copy(value), None
        except CopyError as exc:
            return None, exc


def deep_copy(value: _T, config: CopyConfig | None = None) -> _T:
    """Return a structural deep copy of ``value`` using ``config``."""
    return Copier(config).copy(value)


def try_copy(
    value: _T, config: CopyConfig | None = None
) -> tuple[_T | None, CopyError | None]:
    """Like :func:`deep_copy` but return the failure instead of raising it."""
    return Copier(config).try_copy(value)
