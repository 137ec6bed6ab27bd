from enum import Enum


class StringInjectionPolicy(str, Enum):
    """Policy for plain strings found in schema ``args`` and ``kwargs``."""

    IMPORT = "import"
    """Resolve the string as a dotted import path (or builtin name)."""

    LITERAL = "literal"
    """Inject the string itself."""
