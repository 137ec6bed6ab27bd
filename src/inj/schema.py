"""Build provider graphs from declarative schema documents.

A schema document is an already parsed mapping (loaded from YAML, JSON or
built in code) with a ``container`` section:

.. code-block:: python

    schema = {
        "version": "1",
        "container": {
            "config": {"provider": "Object", "provides": "os.environ"},
            "services": {
                "db": {
                    "provider": "Singleton",
                    "provides": "myapp.db.Database",
                    "kwargs": {"dsn": "container.config()"},
                },
            },
        },
    }

    providers = build_schema(schema)

Entries with a ``provider`` key declare providers; entries without one are
nested containers. Strings starting with ``container.`` are cross-references
into the graph being built, and a ``()`` suffix on a path segment calls that
provider and uses its value.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from pydantic import ValidationError

from inj import providers
from inj._internal.imports import import_string
from inj._internal.policies import StringInjectionPolicy
from inj._internal.references import Reference, is_reference, parse_reference
from inj._internal.schema_models import ProviderNode, SchemaDocument, is_container_node
from inj._internal.type_checks import is_runtime_class
from inj.containers import Container
from inj.exceptions import ProviderNotFound, SchemaError

logger = logging.getLogger(__name__)

BUILTIN_PROVIDERS: Mapping[str, type[providers.Provider]] = {
    "Provider": providers.Provider,
    "Object": providers.Object,
    "Callable": providers.Callable,
    "Factory": providers.Factory,
    "Singleton": providers.Singleton,
    "Dependency": providers.Dependency,
    "DependenciesContainer": providers.DependenciesContainer,
}

_RESERVED_NAMES = frozenset({"parent"})


class SymbolResolver(Protocol):
    """Resolve names used in schema documents to Python objects."""

    def resolve_provider_cls(self, name: str) -> type[providers.Provider]:
        """Return the provider class addressed by ``name``.

        Args:
            name: Built-in provider name or dotted import path.

        """
        ...

    def resolve_symbol(self, path: str) -> Any:
        """Return the object addressed by a dotted import path.

        Args:
            path: Dotted import path, or a builtin name.

        """
        ...


class ImportSymbolResolver:
    """Resolve schema names from a built-in table, then by importing them.

    Args:
        builtins: Provider classes addressable by short name. Defaults to
            ``BUILTIN_PROVIDERS``.

    """

    def __init__(self, builtins: Mapping[str, type[providers.Provider]] | None = None) -> None:
        self._builtins = dict(BUILTIN_PROVIDERS if builtins is None else builtins)

    def resolve_provider_cls(self, name: str) -> type[providers.Provider]:
        """Return a built-in provider class or import one by dotted path.

        Args:
            name: Built-in provider name or dotted import path.

        Raises:
            SchemaError: If the import fails (chained) or the symbol is not a
                ``Provider`` subclass.

        """
        builtin = self._builtins.get(name)
        if builtin is not None:
            return builtin

        try:
            provider_cls = import_string(name)
        except (ImportError, AttributeError, ValueError) as exc:
            msg = f"Can not import provider {name!r}."
            raise SchemaError(msg) from exc

        if not (is_runtime_class(provider_cls) and issubclass(provider_cls, providers.Provider)):
            msg = f"Provider class {name!r} is not a subclass of providers base class."
            raise SchemaError(msg)
        return provider_cls

    def resolve_symbol(self, path: str) -> Any:
        """Import the object addressed by ``path``.

        Args:
            path: Dotted import path, or a builtin name.

        Raises:
            SchemaError: If the import fails (chained).

        """
        try:
            return import_string(path)
        except (ImportError, AttributeError, ValueError) as exc:
            msg = f"Can not import {path!r}."
            raise SchemaError(msg) from exc


class SchemaProcessor:
    """Turn a schema document into a populated container in two passes.

    The first pass creates every provider, recursing into nested containers.
    The second pass walks the same document again and attaches ``provides``,
    ``args`` and ``kwargs``, resolving cross-references against the now
    complete graph. Processing is not transactional: on failure the root
    container keeps whatever was built so far.

    Args:
        schema: Parsed schema document.
        container_cls: Class used for the root and for nested containers.
        resolver: Symbol resolver for provider classes and import paths.
        string_injections: How plain strings in ``args``/``kwargs`` are
            treated. ``IMPORT`` resolves them as import paths, ``LITERAL``
            injects them as they are.

    """

    def __init__(
        self,
        schema: Mapping[str, Any],
        *,
        container_cls: type[Container] = Container,
        resolver: SymbolResolver | None = None,
        string_injections: StringInjectionPolicy = StringInjectionPolicy.IMPORT,
    ) -> None:
        self._schema = schema
        self._container_cls = container_cls
        self._resolver: SymbolResolver = resolver if resolver is not None else ImportSymbolResolver()
        self._string_injections = StringInjectionPolicy(string_injections)
        self._container = container_cls()

    @property
    def container(self) -> Container:
        """The root container being built."""
        return self._container

    def process(self) -> None:
        """Validate the document and run both passes.

        Raises:
            SchemaError: If the ``container`` section is missing, the
                document is malformed, or a provider class or import reference
                cannot be resolved.
            ProviderNotFound: If a cross-reference path does not exist.
            WrongProviderType: If ``container_cls`` rejects a provider.

        """
        if not isinstance(self._schema, Mapping) or "container" not in self._schema:
            msg = "Schema has no 'container' section."
            raise SchemaError(msg)

        try:
            document = SchemaDocument.model_validate(dict(self._schema))
        except ValidationError as exc:
            msg = f"Invalid schema document: {exc}"
            raise SchemaError(msg) from exc

        logger.debug("Creating providers for %d root schema entries", len(document.container))
        self.create_providers(document.container)
        logger.debug("Setting up injections for %d root schema entries", len(document.container))
        self.setup_injections(document.container)
        logger.info(
            "Schema version %s built: %d root providers",
            document.version,
            len(self._container.providers),
        )

    def get_providers(self) -> Mapping[str, providers.Provider]:
        """Return the root container providers."""
        return self._container.providers

    def create_providers(self, node: Mapping[str, Any], container: Container | None = None) -> None:
        """Instantiate every provider of ``node`` into ``container`` (pass one).

        Nested container nodes get a fresh container wrapped in a
        ``providers.Container`` and are processed recursively.

        Args:
            node: Container node mapping entry names to provider or container
                nodes.
            container: Target container. Defaults to the root container.

        Raises:
            SchemaError: If a node is malformed or its provider class cannot
                be resolved.
            WrongProviderType: If the target container rejects a provider.

        """
        target = self._container if container is None else container

        for name, data in node.items():
            data = self._check_node(name, data)
            if is_container_node(data):
                provider: providers.Provider = providers.Container(self._container_cls)
            else:
                provider_node = self._validate_provider_node(name, data)
                provider_cls = self._resolver.resolve_provider_cls(provider_node.provider)
                provider = provider_cls()

            target.set_provider(name, provider)

            if is_container_node(data):
                self.create_providers(data, provider.container)  # type: ignore[attr-defined]

    def setup_injections(self, node: Mapping[str, Any], container: Container | None = None) -> None:
        """Attach resolved ``provides``, ``args`` and ``kwargs`` (pass two).

        Expects ``create_providers`` to have run on the same node.

        Args:
            node: Container node already processed by ``create_providers``.
            container: Target container. Defaults to the root container.

        Raises:
            SchemaError: If an import reference or inline provider fails.
            ProviderNotFound: If a cross-reference path does not exist.

        """
        target = self._container if container is None else container

        for name, data in node.items():
            data = self._check_node(name, data)
            provider = target.providers[name]

            if is_container_node(data):
                self.setup_injections(data, provider.container)  # type: ignore[attr-defined]
                continue

            provider_node = self._validate_provider_node(name, data)
            self._apply_node(provider, provider_node)

    # region Resolution
    def _apply_node(self, provider: providers.Provider, node: ProviderNode) -> None:
        if node.has_provides:
            provider.set_provides(self._resolve_provides(node.provides))

        args = [self._resolve_injection(arg) for arg in node.args]
        if args:
            provider.add_args(*args)

        kwargs = {name: self._resolve_injection(value) for name, value in node.kwargs.items()}
        if kwargs:
            provider.add_kwargs(**kwargs)

    def _resolve_provides(self, provides: Any) -> Any:
        if is_reference(provides):
            return self._resolve_reference(provides)
        if isinstance(provides, str):
            return self._resolver.resolve_symbol(provides)
        if isinstance(provides, Mapping):
            return self._build_inline_provider(provides)
        return provides

    def _resolve_injection(self, value: Any) -> Any:
        if is_reference(value):
            return self._resolve_reference(value)
        if isinstance(value, str):
            if self._string_injections is StringInjectionPolicy.LITERAL:
                return value
            return self._resolver.resolve_symbol(value)
        if isinstance(value, Mapping):
            return self._build_inline_provider(value)
        return value

    def _build_inline_provider(self, data: Mapping[str, Any]) -> providers.Provider:
        node = self._validate_provider_node("<inline>", data)
        provider = self._resolver.resolve_provider_cls(node.provider)()
        self._apply_node(provider, node)
        return provider

    def _resolve_reference(self, expression: str) -> Any:
        try:
            reference = parse_reference(expression)
        except ValueError as exc:
            raise SchemaError(str(exc)) from exc

        current: Any = self._container
        for segment in reference.segments:
            current = _lookup(current, segment.name, reference)
            if segment.call:
                current = current()
        return current

    # endregion Resolution

    def _check_node(self, name: Any, data: Any) -> dict[str, Any]:
        if not isinstance(name, str):
            msg = f"Schema entry names must be strings, got {name!r}."
            raise SchemaError(msg)
        if name in _RESERVED_NAMES:
            msg = f"Schema entry name {name!r} is reserved."
            raise SchemaError(msg)
        if not isinstance(data, Mapping):
            msg = f"Schema entry {name!r} must be a mapping, got {type(data).__name__}."
            raise SchemaError(msg)
        return dict(data)

    def _validate_provider_node(self, name: str, data: Mapping[str, Any]) -> ProviderNode:
        try:
            return ProviderNode.model_validate(dict(data))
        except ValidationError as exc:
            msg = f"Invalid provider entry {name!r}: {exc}"
            raise SchemaError(msg) from exc


def _lookup(target: Any, name: str, reference: Reference) -> Any:
    members = getattr(target, "providers", None)
    if isinstance(members, Mapping) and name in members:
        return members[name]
    if isinstance(target, Mapping) and name in target:
        return target[name]
    try:
        return getattr(target, name)
    except AttributeError as exc:
        msg = f"Can not resolve {name!r} of reference {str(reference)!r}."
        raise ProviderNotFound(msg) from exc


def build_schema(
    schema: Mapping[str, Any],
    *,
    container_cls: type[Container] = Container,
    resolver: SymbolResolver | None = None,
    string_injections: StringInjectionPolicy = StringInjectionPolicy.IMPORT,
) -> dict[str, providers.Provider]:
    """Build a schema document and return its root providers by name.

    Args:
        schema: Parsed schema document.
        container_cls: Class used for the root and for nested containers.
        resolver: Symbol resolver for provider classes and import paths.
        string_injections: How plain strings in ``args``/``kwargs`` are
            treated.

    Raises:
        SchemaError: If the document is invalid or a symbol cannot be resolved.
        ProviderNotFound: If a cross-reference path does not exist.

    """
    processor = SchemaProcessor(
        schema,
        container_cls=container_cls,
        resolver=resolver,
        string_injections=string_injections,
    )
    processor.process()
    return dict(processor.get_providers())


__all__ = [
    "BUILTIN_PROVIDERS",
    "ImportSymbolResolver",
    "SchemaProcessor",
    "StringInjectionPolicy",
    "SymbolResolver",
    "build_schema",
]
