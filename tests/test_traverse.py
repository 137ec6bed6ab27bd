from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest

from inj import providers
from inj.containers import Container
from inj.providers import traverse


class Node(providers.Provider):
    """Provider whose related edges are set by hand."""

    def __init__(self, name: str) -> None:
        super().__init__()
        self.name = name
        self.edges: list[providers.Provider] = []

    @property
    def related(self) -> Iterator[providers.Provider]:
        yield from self.edges

    def __repr__(self) -> str:
        return f"Node({self.name})"


class BrokenTypeCheck(type):
    def __instancecheck__(cls, instance: Any) -> bool:
        msg = "cannot classify"
        raise RuntimeError(msg)


class Unclassifiable(metaclass=BrokenTypeCheck):
    pass


def test_shared_related_provider_is_yielded_once() -> None:
    shared = providers.Object("shared")
    first = providers.Factory(dict, shared)
    second = providers.Factory(list, shared)

    walked = list(traverse(first, second))

    assert walked.count(shared) == 1
    assert len(walked) == 3


def test_cycle_terminates_and_yields_each_node_once() -> None:
    a = Node("a")
    b = Node("b")
    a.edges.append(b)
    b.edges.append(a)

    walked = list(traverse(a))

    assert walked == [a, b]


def test_self_loop_terminates() -> None:
    a = Node("a")
    a.edges.append(a)

    assert list(traverse(a)) == [a]


def test_walk_is_breadth_first() -> None:
    root = Node("root")
    child_a = Node("child_a")
    child_b = Node("child_b")
    grandchild = Node("grandchild")
    root.edges.extend([child_a, child_b])
    child_a.edges.append(grandchild)

    assert list(traverse(root)) == [root, child_a, child_b, grandchild]


def test_type_filter_still_walks_through_filtered_out_providers() -> None:
    singleton = providers.Singleton(dict)
    factory = providers.Factory(dict, singleton)

    assert list(traverse(factory, types=[providers.Singleton])) == [singleton]


def test_duplicate_start_providers_are_yielded_once() -> None:
    provider = providers.Object(1)

    assert list(traverse(provider, provider)) == [provider]


def test_traversal_is_single_use() -> None:
    provider = providers.Object(1)
    walk = traverse(provider)

    assert list(walk) == [provider]
    assert list(walk) == []
    assert list(traverse(provider)) == [provider]


def test_traversal_is_lazy() -> None:
    first = Node("first")
    second = Node("second")
    first.edges.append(second)
    walk = traverse(first)

    assert next(walk) is first
    third = Node("third")
    second.edges.append(third)

    assert list(walk) == [second, third]


def test_type_filter_errors_propagate() -> None:
    with pytest.raises(RuntimeError, match="cannot classify"):
        list(traverse(providers.Object(1), types=[Unclassifiable]))


def test_traverse_follows_overrides_and_nested_containers() -> None:
    root = Container()
    nested = providers.Container(Container)
    inner = providers.Object("inner")
    nested.container.inner = inner
    root.nested = nested
    overriding = providers.Object("overriding")
    root.value = providers.Object("value")
    root.value.override(overriding)

    walked = list(root.traverse())

    assert inner in walked
    assert overriding in walked
    assert nested in walked


def test_provider_traverse_walks_related_only() -> None:
    arg = providers.Object(1)
    provider = providers.Factory(dict, arg)

    assert list(provider.traverse()) == [arg]
