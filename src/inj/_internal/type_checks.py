from __future__ import annotations

import types
from collections.abc import Mapping
from typing import Any, TypeGuard


def is_runtime_class(candidate: object) -> TypeGuard[type[Any]]:
    """Return true when candidate is a runtime class safe for class-only operations.

    Args:
        candidate: Value being checked for eligibility or runtime type constraints.

    """
    return isinstance(candidate, type) and not isinstance(candidate, types.GenericAlias)


def is_container(candidate: object) -> bool:
    """Return true when candidate exposes a ``providers`` mapping.

    Registries, ``DependenciesContainer`` providers and ``Container`` providers
    wrapping a registry all qualify. Classes never do.

    Args:
        candidate: Value being checked for a container-shaped interface.

    """
    if is_runtime_class(candidate):
        return False
    return isinstance(getattr(candidate, "providers", None), Mapping)


__all__ = ["is_container", "is_runtime_class"]
