from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from inj.exceptions import CyclicParentError


def enter_parent_chain(visited: set[int], node: object) -> None:
    """Record ``node`` as visited while walking ``parent`` links.

    Args:
        visited: Identities of the nodes already seen on this walk.
        node: Container or provider being entered.

    Raises:
        CyclicParentError: If ``node`` was already visited on this walk.

    """
    node_id = id(node)
    if node_id in visited:
        msg = f"Parent chain of {node!r} loops back on itself."
        raise CyclicParentError(msg)
    visited.add(node_id)


def resolve_parent_name(node: Any, visited: set[int]) -> str | None:
    """Return the dotted name of ``node`` continuing an ongoing parent walk.

    Objects taking part in parent chains implement
    ``_resolve_parent_name(visited)``; anything else falls back to its public
    ``parent_name`` attribute.

    Args:
        node: Parent whose name is resolved.
        visited: Identities of the nodes already seen on this walk.

    """
    resolve = getattr(node, "_resolve_parent_name", None)
    if resolve is not None:
        return resolve(visited)
    return getattr(node, "parent_name", None)


def detach_child(parent: Any, child: Any, remaining: Iterable[Any]) -> None:
    """Clear the parent link of a provider that ``parent`` no longer holds.

    The link is kept when ``child`` belongs to another parent or is still
    held by ``parent`` under another name.

    Args:
        parent: Container or provider the child was removed from.
        child: Removed or replaced provider.
        remaining: Providers ``parent`` still holds.

    """
    if getattr(child, "parent", None) is not parent:
        return
    if any(member is child for member in remaining):
        return
    child.assign_parent(None)


__all__ = ["detach_child", "enter_parent_chain", "resolve_parent_name"]
