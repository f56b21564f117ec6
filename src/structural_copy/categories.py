"""Classification of runtime values into structural categories."""

from __future__ import annotations

import array
import asyncio
import collections
import datetime
import decimal
import enum
import fractions
import functools
import io
import pathlib
import queue
import socket
import threading
import types
import uuid
import weakref
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from .config import CopyConfig

__all__ = [
    "Category",
    "carries_instance_state",
    "classify",
    "has_attribute_state",
    "is_immutable",
    "is_shared",
    "type_name",
]


class Category(enum.Enum):
    """Structural shape of a value, deciding how it is reconstructed."""

    PRIMITIVE = "primitive"
    TIMESTAMP = "timestamp"
    RECORD = "record"
    FIXED_SEQUENCE = "fixed_sequence"
    DYNAMIC_SEQUENCE = "dynamic_sequence"
    ASSOCIATIVE = "associative"
    REFERENCE = "reference"
    POLYMORPHIC = "polymorphic"
    OPAQUE_SHARED = "opaque_shared"


_IMMUTABLE_TYPES: Final[tuple[type, ...]] = (
    type(None),
    bool,
    int,
    float,
    complex,
    str,
    bytes,
    range,
    slice,
    decimal.Decimal,
    fractions.Fraction,
    uuid.UUID,
    datetime.date,
    datetime.timedelta,
    datetime.tzinfo,
    pathlib.PurePath,
    enum.Enum,
    type(Ellipsis),
    type(NotImplemented),
)

_TIMESTAMP_TYPES: Final[tuple[type, ...]] = (datetime.datetime, datetime.time)

_OPAQUE_TYPES: Final[tuple[type, ...]] = (
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    types.MethodWrapperType,
    types.WrapperDescriptorType,
    types.MethodDescriptorType,
    types.ClassMethodDescriptorType,
    functools.partial,
    type,
    types.ModuleType,
    types.CodeType,
    types.FrameType,
    types.TracebackType,
    types.GeneratorType,
    types.CoroutineType,
    types.AsyncGeneratorType,
    types.MappingProxyType,
    memoryview,
    property,
    staticmethod,
    classmethod,
    weakref.ref,
    weakref.ProxyType,
    weakref.CallableProxyType,
    io.IOBase,
    socket.socket,
    type(threading.Lock()),
    type(threading.RLock()),
    threading.Event,
    threading.Condition,
    threading.Semaphore,
    threading.Barrier,
    threading.Thread,
    queue.Queue,
    queue.SimpleQueue,
    asyncio.Queue,
    asyncio.Future,
    asyncio.AbstractEventLoop,
)

_DYNAMIC_SEQUENCE_TYPES: Final[tuple[type, ...]] = (
    list,
    bytearray,
    collections.deque,
    array.array,
)

_ASSOCIATIVE_TYPES: Final[tuple[type, ...]] = (dict, set, frozenset)


def type_name(value: object) -> str:
    """Return a readable, qualified name for the type of ``value``."""
    cls = type(value)
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def is_immutable(value: object) -> bool:
    """Return ``True`` when ``value`` may be shared with its copy as-is."""
    return isinstance(value, _IMMUTABLE_TYPES)


def is_shared(value: object) -> bool:
    """Return ``True`` for runtime resources that are never cloned."""
    return isinstance(value, _OPAQUE_TYPES)


def has_attribute_state(value: object) -> bool:
    """Return ``True`` when ``value`` keeps members in ``__dict__`` or slots."""
    cls = type(value)
    return hasattr(value, "__dict__") or any(
        "__slots__" in vars(base) for base in cls.__mro__[:-1]
    )


def carries_instance_state(value: object) -> bool:
    """Return ``True`` for immutable-type subclasses with members of their own.

    A ``str`` subclass with a ``__dict__`` is immutable only in its string
    value; its attributes still need copying. Enum members are singletons.
    """
    if isinstance(value, enum.Enum):
        return False
    if hasattr(value, "__dict__"):
        return True
    for base in type(value).__mro__:
        if base in _IMMUTABLE_TYPES:
            return False
        if not issubclass(base, _IMMUTABLE_TYPES):
            continue
        slots = vars(base).get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        if any(name != "__weakref__" for name in slots):
            return True
    return False


def classify(value: object, config: CopyConfig) -> Category:
    """Return the :class:`Category` deciding how ``value`` is reconstructed.

    :attr:`Category.RECORD` is never returned here: a record is the attribute
    state reached through a :attr:`Category.REFERENCE`.
    """
    if isinstance(value, _TIMESTAMP_TYPES):
        return Category.TIMESTAMP
    if is_immutable(value) and not carries_instance_state(value):
        return Category.PRIMITIVE
    if is_shared(value) or (
        config.shared_types and isinstance(value, config.shared_types)
    ):
        return Category.OPAQUE_SHARED
    if isinstance(value, types.CellType):
        return Category.POLYMORPHIC
    if isinstance(value, tuple):
        return Category.FIXED_SEQUENCE
    if isinstance(value, _DYNAMIC_SEQUENCE_TYPES):
        return Category.DYNAMIC_SEQUENCE
    if isinstance(value, _ASSOCIATIVE_TYPES):
        return Category.ASSOCIATIVE
    if has_attribute_state(value):
        return Category.REFERENCE
    return Category.PRIMITIVE
