from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUPPORTED_SCHEMA_VERSIONS = frozenset({"1"})
PROVIDER_KEY = "provider"


class SchemaDocument(BaseModel):
    """Top level of a schema document."""

    model_config = ConfigDict(extra="ignore")

    version: str = "1"
    """Schema format version. Numbers are accepted and compared as strings."""
    container: dict[str, dict[str, Any]]
    """Root container node: provider name to provider or container node."""

    @field_validator("version", mode="before")
    @classmethod
    def _normalize_version(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(int(value)) if float(value).is_integer() else str(value)
        if isinstance(value, str) and value not in SUPPORTED_SCHEMA_VERSIONS:
            msg = f"unsupported schema version {value!r}"
            raise ValueError(msg)
        return value


class ProviderNode(BaseModel):
    """A schema node that declares a provider.

    Used both for named entries of a container node and for inline provider
    specs found in ``provides``, ``args`` and ``kwargs``.
    """

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    provider: str = Field(min_length=1)
    """Built-in provider name or dotted import path of a provider class."""
    provides: Any = None
    """What the provider produces: reference, import path or inline spec."""
    args: list[Any] = Field(default_factory=list)
    """Positional construction arguments."""
    kwargs: dict[str, Any] = Field(default_factory=dict)
    """Keyword construction arguments."""

    @property
    def has_provides(self) -> bool:
        """Whether ``provides`` was given explicitly, even as ``null``."""
        return "provides" in self.model_fields_set


def is_container_node(node: dict[str, Any]) -> bool:
    """Return true for nodes without a ``provider`` key (nested containers).

    Args:
        node: Schema node being classified.

    """
    return PROVIDER_KEY not in node


__all__ = [
    "PROVIDER_KEY",
    "SUPPORTED_SCHEMA_VERSIONS",
    "ProviderNode",
    "SchemaDocument",
    "is_container_node",
]
