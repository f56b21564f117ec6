from __future__ import annotations

import logging
import sys
import threading
import types

import pytest
from structural_copy import (
    DEFAULT_MAX_CHAIN_LENGTH,
    ChainTooLongError,
    CircularReferenceError,
    CopyConfig,
    CopyError,
    deep_copy,
    try_copy,
)

SMALL = CopyConfig(detect_cycles_after=10, max_chain_length=50)


class Node:
    def __init__(self, label: str) -> None:
        self.label = label
        self.next: Node | None = None


def _nest(levels: int) -> list[object]:
    """Return ``levels`` lists, each holding the next, the innermost empty."""
    value: list[object] = []
    for _ in range(levels - 1):
        value = [value]
    return value


def test_self_referencing_instance_is_rejected() -> None:
    node = Node("loop")
    node.next = node
    with pytest.raises(CircularReferenceError) as ei:
        deep_copy(node, SMALL)
    assert ei.value.type_name.endswith("Node")
    assert "circular reference" in str(ei.value)


def test_self_containing_list_is_rejected() -> None:
    looped: list[object] = []
    looped.append(looped)
    with pytest.raises(CircularReferenceError) as ei:
        deep_copy(looped, SMALL)
    assert ei.value.type_name == "list"


def test_self_containing_dict_is_rejected() -> None:
    looped: dict[str, object] = {}
    looped["self"] = looped
    with pytest.raises(CircularReferenceError):
        deep_copy(looped, SMALL)


def test_cycle_detected_with_default_thresholds() -> None:
    first = Node("a")
    second = Node("b")
    first.next = second
    second.next = first
    with pytest.raises(CircularReferenceError):
        deep_copy(first)


def test_cycle_through_cell_only_stopped_by_ceiling() -> None:
    cell = types.CellType()
    cell.cell_contents = cell
    with pytest.raises(ChainTooLongError) as ei:
        deep_copy(cell, SMALL)
    assert ei.value.limit == 50


def test_nesting_at_ceiling_succeeds() -> None:
    copied = deep_copy(_nest(50), SMALL)
    depth = 1
    while copied:
        copied = copied[0]  # type: ignore[assignment]
        depth += 1
    assert depth == 50


def test_nesting_past_ceiling_fails() -> None:
    with pytest.raises(ChainTooLongError) as ei:
        deep_copy(_nest(51), SMALL)
    assert ei.value.type_name == "list"


def _chain(length: int) -> Node:
    """Return the head of ``length`` linked nodes."""
    head = Node("0")
    current = head
    for index in range(1, length):
        current.next = Node(str(index))
        current = current.next
    return head


def test_instance_chain_at_ceiling_succeeds() -> None:
    # each instance costs two levels, one more for the members of the last
    config = CopyConfig(detect_cycles_after=10, max_chain_length=49)
    copied = deep_copy(_chain(24), config)
    labels = []
    node: Node | None = copied
    while node is not None:
        labels.append(node.label)
        node = node.next
    assert labels == [str(index) for index in range(24)]


def test_instance_chain_past_ceiling_fails() -> None:
    config = CopyConfig(detect_cycles_after=10, max_chain_length=49)
    with pytest.raises(ChainTooLongError) as ei:
        deep_copy(_chain(25), config)
    assert ei.value.type_name.endswith("Node")
    assert ei.value.limit == 49


def test_default_ceiling_is_reachable() -> None:
    limit = sys.getrecursionlimit()
    assert deep_copy(_nest(DEFAULT_MAX_CHAIN_LENGTH)) is not None
    with pytest.raises(ChainTooLongError):
        deep_copy(_nest(DEFAULT_MAX_CHAIN_LENGTH + 1))
    assert sys.getrecursionlimit() == limit


def test_siblings_sharing_a_target_are_not_flagged() -> None:
    leaf = [1]
    value: list[object] = [leaf, leaf]
    for _ in range(20):
        value = [value]
    copied = deep_copy(value, SMALL)
    inner = copied
    for _ in range(20):
        inner = inner[0]  # type: ignore[assignment,index]
    assert inner == [[1], [1]]
    assert inner[0] is not inner[1]


def test_unconditional_tracking_catches_shallow_cycles() -> None:
    looped: list[object] = []
    looped.append(looped)
    config = CopyConfig(detect_cycles_after=0, max_chain_length=50)
    with pytest.raises(CircularReferenceError):
        deep_copy(looped, config)


def test_try_copy_returns_the_error() -> None:
    looped: list[object] = []
    looped.append(looped)
    copied, error = try_copy(looped, SMALL)
    assert copied is None
    assert isinstance(error, CircularReferenceError)
    assert isinstance(error, CopyError)


def test_state_is_fresh_for_every_copy() -> None:
    with pytest.raises(ChainTooLongError):
        deep_copy(_nest(51), SMALL)
    assert deep_copy(_nest(50), SMALL) is not None


def test_tracking_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    looped: list[object] = []
    looped.append(looped)
    with caplog.at_level(logging.DEBUG, logger="structural_copy.copier"):
        with pytest.raises(CircularReferenceError):
            deep_copy(looped, SMALL)
    assert "Tracking reference identities past depth 10" in caplog.text


def test_concurrent_copies_restore_recursion_limit() -> None:
    limit = sys.getrecursionlimit()
    results: list[object] = []

    def worker() -> None:
        results.append(deep_copy(_nest(50), SMALL))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(results) == 4
    assert sys.getrecursionlimit() == limit
