from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import TYPE_CHECKING

import pytest
from structural_copy import CopyConfig, CopyError, copy_arguments

if TYPE_CHECKING:
    from collections.abc import Iterable


@copy_arguments
def touch_list(a: list[int]) -> int:
    a.append(3)
    return sum(a)


def test_mutation_prevented() -> None:
    test_list = [1, 2, 3]
    assert touch_list(test_list) == 9
    assert test_list == [1, 2, 3]


@copy_arguments
def pure(a: Iterable[int]) -> tuple[int, ...]:
    return tuple(sorted(a))


def test_no_mutation() -> None:
    assert pure({3, 1, 2}) == (1, 2, 3)


@dataclasses.dataclass
class Payload:
    numbers: list[int]


@copy_arguments
def mutate_args(target: list[int], *, payload: Payload) -> tuple[list[int], list[int]]:
    target.append(99)
    payload.numbers.append(42)
    return target, payload.numbers


def test_args_and_kwargs_are_copied() -> None:
    original = [1, 2, 3]
    payload = Payload(numbers=[4, 5])
    mutated_args, mutated_payload = mutate_args(original, payload=payload)
    assert original == [1, 2, 3]
    assert payload.numbers == [4, 5]
    # The function still observes the mutated versions internally.
    assert mutated_args == [1, 2, 3, 99]
    assert mutated_payload == [4, 5, 42]


@copy_arguments(check=True)
def mutate_nested(data: dict[str, list[int]]) -> None:
    data["numbers"].append(99)


def test_check_reports_precise_path() -> None:
    data = {"numbers": [1, 2, 3]}
    with pytest.raises(RuntimeError) as ei:
        mutate_nested(data)
    assert "Argument mutated at arg[0]/['numbers']/<len>" in str(ei.value)
    assert data == {"numbers": [1, 2, 3]}


@copy_arguments(check=True)
def mutate_kwarg(*, payload: list[int]) -> None:
    payload.pop()


def test_check_covers_kwargs() -> None:
    with pytest.raises(RuntimeError) as ei:
        mutate_kwarg(payload=[1, 2, 3])
    assert "kwarg['payload']/<len>" in str(ei.value)


@copy_arguments(check=True)
def mutate_attribute(box: Payload) -> None:
    box.numbers[0] += 1


def test_check_detects_attribute_mutation() -> None:
    with pytest.raises(RuntimeError) as ei:
        mutate_attribute(Payload([1]))
    assert "arg[0]/.numbers/[0]" in str(ei.value)


@copy_arguments(check=True, warn_only=True)
def relaxed(values: list[int]) -> int:
    values.append(1)
    return len(values)


def test_warn_only_logs(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="structural_copy.copy_arguments"):
        assert relaxed([]) == 1
    assert "Argument mutated at arg[0]/<len>" in caplog.text


@copy_arguments(check=True)
def reads_only(values: list[int]) -> int:
    return sum(values)


def test_check_passes_without_mutation() -> None:
    assert reads_only([1, 2]) == 3


@copy_arguments
async def append_later(values: list[int]) -> list[int]:
    await asyncio.sleep(0)
    values.append(4)
    return values


def test_coroutines_receive_copies() -> None:
    original = [1]
    assert asyncio.run(append_later(original)) == [1, 4]
    assert original == [1]


@copy_arguments(config=CopyConfig(detect_cycles_after=0))
def accepts_anything(value: object) -> object:
    return value


def test_copy_failures_propagate() -> None:
    looped: list[object] = []
    looped.append(looped)
    with pytest.raises(CopyError):
        accepts_anything(looped)
