from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType, TracebackType
from typing import Any, ClassVar

from inj._internal.parents import detach_child, enter_parent_chain, resolve_parent_name
from inj._internal.type_checks import is_container
from inj.exceptions import (
    NotOverriddenError,
    ProviderNotFound,
    SelfOverrideError,
    UndefinedDependencies,
    WrongProviderType,
)
from inj.providers import (
    ChildProvider,
    Container as ContainerProvider,
    DependenciesContainer,
    Dependency,
    Provider,
    Singleton,
    is_provider,
    traverse,
)

logger = logging.getLogger(__name__)

_DEPENDENCY_TYPES: tuple[type[Provider], ...] = (Dependency, DependenciesContainer)
_PARENT_ATTRIBUTE = "parent"


@dataclass
class WiringConfiguration:
    """Describe where a container should be wired into.

    The configuration is carried as plain data; wiring itself is done by an
    external collaborator that reads it.
    """

    modules: list[str] = field(default_factory=list)
    """Module names to wire."""
    packages: list[str] = field(default_factory=list)
    """Package names to wire recursively."""
    from_package: str | None = None
    """Anchor package for relative module and package names."""
    auto_wire: bool = True
    """Whether wiring runs automatically when the container is created."""


class Container:
    """Hold named providers and compose them into a graph.

    Providers are registered by attribute assignment or ``set_provider`` and
    read back by attribute access or through ``providers``. Only instances of
    ``provider_type`` are accepted; restrict it on a subclass, or per instance,
    to build containers of a single provider kind. The name ``"parent"`` is
    reserved for the parent link and is never registered as a provider.

    Containers can be overridden by other containers: same-named providers of
    the overriding container override this container's providers until the
    override is reset.

    Examples:
        .. code-block:: python

            container = Container()
            container.settings = Object({"dsn": "sqlite://"})
            container.db = Singleton(Database, container.settings)

            with container.override_providers(db=Object(FakeDatabase())):
                run_tests(container.db())

    """

    provider_type: ClassVar[type[Provider]] = Provider

    def __init__(
        self,
        *,
        provider_type: type[Provider] | None = None,
        wiring_config: WiringConfiguration | None = None,
        declarative_parent: Any = None,
    ) -> None:
        """Create an empty container.

        Args:
            provider_type: Restrict accepted providers for this instance only.
                Defaults to the class level ``provider_type``.
            wiring_config: Wiring configuration consumed by the wiring
                collaborator.
            declarative_parent: Static definition this container was built
                from; its ``__name__`` is the fallback ``parent_name``.

        """
        self._providers: dict[str, Provider] = {}
        self._overridden: tuple[Any, ...] = ()
        self._overriding_records: list[tuple[tuple[Provider, Provider | None], ...]] = []
        if provider_type is not None:
            self.provider_type = provider_type  # type: ignore[misc]
        self.parent: Any = None
        self.declarative_parent = declarative_parent
        self.wiring_config = wiring_config if wiring_config is not None else WiringConfiguration()
        self.wired_to_modules: list[str] = []
        self.wired_to_packages: list[str] = []

    # region Registry
    def __setattr__(self, name: str, value: Any) -> None:
        if is_provider(value) and name != _PARENT_ATTRIBUTE:
            self._register(name, value)
            return
        super().__setattr__(name, value)

    def __getattr__(self, name: str) -> Provider:
        providers = self.__dict__.get("_providers")
        if providers is not None and name in providers:
            return providers[name]
        msg = f"Container {self!r} has no provider {name!r}."
        raise ProviderNotFound(msg)

    def __delattr__(self, name: str) -> None:
        if name in self._providers:
            removed = self._providers.pop(name)
            detach_child(self, removed, self._providers.values())
            logger.debug("Provider %r removed from container %r", name, self)
            return
        if name in self.__dict__:
            super().__delattr__(name)

    @property
    def providers(self) -> Mapping[str, Provider]:
        """Read-only view of registered providers by name."""
        return MappingProxyType(self._providers)

    @property
    def overridden(self) -> tuple[Any, ...]:
        """Overriding containers, most recent last."""
        return self._overridden

    @property
    def dependencies(self) -> dict[str, Provider]:
        """Registered ``Dependency`` and ``DependenciesContainer`` providers."""
        return {
            name: provider
            for name, provider in self._providers.items()
            if isinstance(provider, _DEPENDENCY_TYPES)
        }

    def set_provider(self, name: str, provider: Provider) -> None:
        """Register ``provider`` under ``name``.

        Replacing a name does not carry over overrides of the replaced
        provider. ``"parent"`` assigns the parent link instead.

        Args:
            name: Registry name.
            provider: Provider to register.

        Raises:
            WrongProviderType: If ``provider`` is not a provider or not an
                instance of ``provider_type``. The container is unchanged.

        """
        if not is_provider(provider):
            msg = f"Container {self!r} can contain only providers, got {provider!r}."
            raise WrongProviderType(msg)
        setattr(self, name, provider)

    def set_providers(self, **providers: Provider) -> None:
        """Register several providers, checking all of them before any change.

        Args:
            **providers: Providers by registry name.

        Raises:
            WrongProviderType: If any provider is rejected. No provider is
                registered in that case.

        """
        for name, provider in providers.items():
            if not is_provider(provider):
                msg = f"Container {self!r} can contain only providers, got {provider!r}."
                raise WrongProviderType(msg)
            if name != _PARENT_ATTRIBUTE:
                self._check_provider_type(provider)
        for name, provider in providers.items():
            setattr(self, name, provider)

    def resolve_provider_name(self, provider: Provider) -> str:
        """Return the first name ``provider`` is registered under.

        Args:
            provider: Registered provider to look up by identity.

        Raises:
            ProviderNotFound: If the provider is not registered here.

        """
        for name, container_provider in self._providers.items():
            if container_provider is provider:
                return name
        msg = f"Can not resolve name for provider {provider!r}."
        raise ProviderNotFound(msg)

    def traverse(self, types: Iterable[type[Any]] | None = None) -> Iterator[Provider]:
        """Walk every provider reachable from this container, breadth first.

        Args:
            types: Optional provider classes to filter the yielded providers by.

        """
        return traverse(*self._providers.values(), types=types)

    def _register(self, name: str, provider: Provider) -> None:
        self._check_provider_type(provider)
        replaced = self._providers.get(name)
        self._providers[name] = provider
        if replaced is not None and replaced is not provider:
            detach_child(self, replaced, self._providers.values())
        if isinstance(provider, ChildProvider):
            provider.assign_parent(self)
        logger.debug("Provider %r registered in container %r as %r", provider, self, name)

    def _check_provider_type(self, provider: Provider) -> None:
        if not isinstance(provider, self.provider_type):
            msg = f"Container {self!r} can contain only {self.provider_type!r} instances, got {provider!r}."
            raise WrongProviderType(msg)

    # endregion Registry

    # region Parents
    @property
    def parent_name(self) -> str | None:
        """Name of this container within its parents.

        Delegates to ``parent`` when set, then falls back to the name of
        ``declarative_parent``.

        Raises:
            CyclicParentError: If the parent chain loops.

        """
        return self._resolve_parent_name(set())

    def assign_parent(self, parent: Any) -> None:
        """Replace the parent link.

        Args:
            parent: Provider or container holding this container, or ``None``.

        """
        self.parent = parent

    def _resolve_parent_name(self, visited: set[int]) -> str | None:
        enter_parent_chain(visited, self)
        if self.parent is not None:
            return resolve_parent_name(self.parent, visited)
        if self.declarative_parent is not None:
            return self.declarative_parent.__name__
        return None

    # endregion Parents

    # region Overriding
    def override(self, overriding: Any) -> None:
        """Override this container with another container or a value.

        When ``overriding`` holds providers, each of them overrides the
        same-named provider of this container; names only present in
        ``overriding`` are ignored. Any other value is only pushed onto
        ``overridden``.

        Args:
            overriding: Overriding container, or any value to record.

        Raises:
            SelfOverrideError: If ``overriding`` is this container.

        """
        if overriding is self:
            msg = f"Container {self!r} could not be overridden with itself."
            raise SelfOverrideError(msg)

        record: list[tuple[Provider, Provider | None]] = []
        if is_container(overriding):
            for name, overriding_provider in overriding.providers.items():
                provider = self._providers.get(name)
                if provider is None:
                    continue
                provider.override(overriding_provider)
                record.append((provider, provider.last_overriding))

        self._overridden += (overriding,)
        self._overriding_records.append(tuple(record))
        logger.debug("Container %r overridden with %r (%d providers)", self, overriding, len(record))

    def override_providers(self, **overriding_providers: Any) -> ProvidersOverridingContext:
        """Override named providers, resetting them when the context exits.

        Args:
            **overriding_providers: Overriding providers or values by the name
                of the provider they override.

        Raises:
            ProviderNotFound: If a name is not registered. Nothing is overridden
                in that case.

        """
        missing = [name for name in overriding_providers if name not in self._providers]
        if missing:
            msg = f"Container {self!r} has no providers named {', '.join(repr(name) for name in missing)}."
            raise ProviderNotFound(msg)

        overridden: list[tuple[Provider, Provider | None]] = []
        for name, overriding_provider in overriding_providers.items():
            provider = self._providers[name]
            provider.override(overriding_provider)
            overridden.append((provider, provider.last_overriding))
        return ProvidersOverridingContext(self, tuple(overridden))

    def reset_last_overriding(self) -> None:
        """Reset the most recent container override.

        Only the provider overrides that override pushed are removed;
        overrides made directly on providers since then stay active.

        Raises:
            NotOverriddenError: If the container is not overridden.

        """
        if not self._overridden:
            msg = f"Container {self!r} is not overridden."
            raise NotOverriddenError(msg)
        self._overridden = self._overridden[:-1]
        for provider, overriding in reversed(self._overriding_records.pop()):
            if overriding is not None:
                provider.remove_overriding(overriding)

    def reset_override(self) -> None:
        """Reset every container override and every provider override."""
        self._overridden = ()
        self._overriding_records.clear()
        for provider in self._providers.values():
            provider.reset_override()

    def apply_container_providers_overridings(self) -> None:
        """Re-apply the overrides of every reachable ``Container`` provider.

        ``providers.Container`` applies the providers given at construction
        once; this pushes them again, for example after ``reset_override``.
        """
        for provider in self.traverse(types=[ContainerProvider]):
            provider.apply_overridings()  # type: ignore[attr-defined]

    # endregion Overriding

    def reset_singletons(self) -> SingletonResetContext:
        """Drop cached instances of every reachable ``Singleton``.

        Returns:
            A context manager that resets the singletons again on exit, so
            instances built inside the ``with`` block do not leak out of it.

        """
        singletons = list(self.traverse(types=[Singleton]))
        for provider in singletons:
            provider.reset()  # type: ignore[attr-defined]
        logger.debug("Container %r reset %d singletons", self, len(singletons))
        return SingletonResetContext(self)

    def check_dependencies(self) -> None:
        """Check that every reachable ``Dependency`` can produce a value.

        Raises:
            UndefinedDependencies: Listing the names of undefined dependencies.

        """
        undefined = [
            dependency
            for dependency in self.traverse(types=[Dependency])
            if not dependency.is_defined  # type: ignore[attr-defined]
        ]
        if not undefined:
            return
        names = [dependency.parent_name or repr(dependency) for dependency in undefined]  # type: ignore[attr-defined]
        raise UndefinedDependencies(self.parent_name or type(self).__name__, names)

    def from_schema(self, schema: Mapping[str, Any]) -> None:
        """Build providers from a schema document and register them here.

        Args:
            schema: Parsed schema document with a ``container`` section.

        """
        from inj.schema import build_schema  # noqa: PLC0415

        self.set_providers(**build_schema(schema))

    def is_auto_wiring_enabled(self) -> bool:
        """Whether ``wiring_config`` asks for automatic wiring."""
        return self.wiring_config.auto_wire


class ProvidersOverridingContext:
    """Reset provider overrides made by ``Container.override_providers``."""

    def __init__(
        self,
        container: Container,
        overridden_providers: tuple[tuple[Provider, Provider | None], ...],
    ) -> None:
        self._container = container
        self._overridden_providers = overridden_providers

    def __enter__(self) -> Container:
        return self._container

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        for provider, overriding in reversed(self._overridden_providers):
            if overriding is not None:
                provider.remove_overriding(overriding)


class SingletonResetContext:
    """Reset singletons again when leaving the block opened by ``Container.reset_singletons``."""

    def __init__(self, container: Container) -> None:
        self._container = container

    def __enter__(self) -> Container:
        return self._container

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self._container.reset_singletons()


__all__ = ["Container", "ProvidersOverridingContext", "SingletonResetContext", "WiringConfiguration"]
