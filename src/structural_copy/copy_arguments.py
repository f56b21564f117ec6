"""Decorator that hands a callable structural copies of its arguments."""

from __future__ import annotations

import inspect
import logging
from functools import wraps
from typing import TYPE_CHECKING, Any, TypeVar, cast, overload

from .compare import first_difference
from .copier import Copier

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping, Sequence

    from .config import CopyConfig

_DecoratedFunc = TypeVar("_DecoratedFunc", bound="Callable[..., Any]")

_LOGGER = logging.getLogger(__name__)

__all__ = ["copy_arguments"]


def _report_mutations(
    args: Sequence[object],
    args_snapshot: Sequence[object],
    kwargs: Mapping[str, object],
    kwargs_snapshot: Mapping[str, object],
    *,
    warn_only: bool,
) -> None:
    """Raise or log when the callee changed any of the copies it received."""
    labelled: list[tuple[str, object, object]] = [
        (f"arg[{index}]", current, snapshot)
        for index, (current, snapshot) in enumerate(
            zip(args, args_snapshot, strict=True)
        )
    ]
    labelled.extend(
        (f"kwarg[{key!r}]", current, kwargs_snapshot[key])
        for key, current in kwargs.items()
    )
    for label, current, snapshot in labelled:
        diff = first_difference(snapshot, current, path=(label,))
        if not diff:
            continue
        diff_path, message = diff
        text = f"Argument mutated at {'/'.join(diff_path)}: {message}"
        if warn_only:
            _LOGGER.warning(text)
            continue
        raise RuntimeError(text)


@overload
def copy_arguments(fn: _DecoratedFunc) -> _DecoratedFunc: ...


@overload
def copy_arguments(
    *,
    config: CopyConfig | None = None,
    check: bool = False,
    warn_only: bool = False,
) -> Callable[[_DecoratedFunc], _DecoratedFunc]: ...


def copy_arguments(
    fn: _DecoratedFunc | None = None,
    *,
    config: CopyConfig | None = None,
    check: bool = False,
    warn_only: bool = False,
) -> Callable[[_DecoratedFunc], _DecoratedFunc] | _DecoratedFunc:
    """Call ``fn`` with structural copies of its arguments.

    The caller's objects are never handed to ``fn``. With ``check`` set, the
    copies are snapshotted before the call and compared afterwards; a mutation
    raises ``RuntimeError``, or is logged as a warning when ``warn_only`` is
    ``True``. Copy failures propagate as :class:`CopyError`.
    """
    copier = Copier(config)

    def prepare(
        args: tuple[object, ...], kwargs: dict[str, object]
    ) -> tuple[tuple[object, ...], dict[str, object]]:
        return copier.copy(args), copier.copy(kwargs)

    def verify(
        frozen: tuple[tuple[object, ...], dict[str, object]],
        snapshot: tuple[tuple[object, ...], dict[str, object]] | None,
    ) -> None:
        if snapshot is None:
            return
        _report_mutations(
            frozen[0], snapshot[0], frozen[1], snapshot[1], warn_only=warn_only
        )

    def decorator(func: _DecoratedFunc) -> _DecoratedFunc:
        if inspect.iscoroutinefunction(func):
            async_fn = cast("Callable[..., Awaitable[object]]", func)

            @wraps(func)
            async def async_wrapper(*args: object, **kwargs: object) -> object:
                frozen = prepare(args, kwargs)
                snapshot = copier.copy(frozen) if check else None
                result = await async_fn(*frozen[0], **frozen[1])
                verify(frozen, snapshot)
                return result

            return cast("_DecoratedFunc", async_wrapper)

        @wraps(func)
        def wrapper(*args: object, **kwargs: object) -> object:
            frozen = prepare(args, kwargs)
            snapshot = copier.copy(frozen) if check else None
            result = func(*frozen[0], **frozen[1])
            verify(frozen, snapshot)
            return result

        return cast("_DecoratedFunc", wrapper)

    if fn is not None:
        return decorator(fn)
    return decorator
