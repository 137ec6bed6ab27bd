from __future__ import annotations

import builtins
import importlib
from typing import Any


def import_string(path: str) -> Any:
    """Import a member addressed by a dotted path.

    ``"package.module.member"`` imports ``package.module`` and returns its
    ``member`` attribute. A bare name without dots is looked up in
    :mod:`builtins`.

    Args:
        path: Dotted import path or builtin name.

    Raises:
        ValueError: If ``path`` is empty.
        ImportError: If the module part cannot be imported.
        AttributeError: If the module has no such member.

    """
    if not path:
        msg = "Import path must not be empty."
        raise ValueError(msg)

    module_name, _, member_name = path.rpartition(".")
    if not module_name:
        return getattr(builtins, member_name)

    module = importlib.import_module(module_name)
    return getattr(module, member_name)


__all__ = ["import_string"]
