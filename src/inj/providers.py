"""Providers: the units of the dependency graph.

Every provider produces a value when called, can be overridden by other
providers and points at related providers, which makes the graph walkable
with :func:`traverse`.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType, TracebackType
from typing import TYPE_CHECKING, Any, ClassVar

from inj._internal.parents import detach_child, enter_parent_chain, resolve_parent_name
from inj._internal.type_checks import is_container, is_runtime_class
from inj.exceptions import (
    DependencyNotDefinedError,
    NotOverriddenError,
    ProviderError,
    ProviderNotFound,
    SelfOverrideError,
)

if TYPE_CHECKING:
    from typing_extensions import Self

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class Provider:
    """Represent the base unit of the provider graph.

    A provider produces a value when called and can be overridden by another
    provider. Overrides form a LIFO stack: the most recent override answers
    every call until it is reset, and an overriding provider can be
    overridden in turn.

    The base provider also carries construction arguments. ``provides`` is
    called with the stored positional arguments followed by call-time ones,
    and with stored keyword arguments updated by call-time ones. Arguments
    that are providers are called first and their produced values injected.

    Providers compare and hash by identity.

    Examples:
        .. code-block:: python

            provider = Provider().set_provides(dict).add_kwargs(debug=True)
            provider()  # {'debug': True}

            with provider.override(Object({"debug": False})):
                provider()  # {'debug': False}

    """

    def __init__(self) -> None:
        self._overridden: tuple[Provider, ...] = ()
        self._last_overriding: Provider | None = None
        self._provides: Any = None
        self._args: tuple[Any, ...] = ()
        self._kwargs: dict[str, Any] = {}

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        """Produce a value, deferring to the last overriding provider when set."""
        if self._last_overriding is not None:
            return self._last_overriding(*args, **kwargs)
        return self._provide(args, kwargs)

    def __repr__(self) -> str:
        return f"<{type(self).__module__}.{type(self).__qualname__}({self._provides!r}) at {id(self):#x}>"

    # region Overriding
    @property
    def overridden(self) -> tuple[Provider, ...]:
        """Overriding providers, most recent last."""
        return self._overridden

    @property
    def last_overriding(self) -> Provider | None:
        """The provider currently answering calls instead of this one."""
        return self._last_overriding

    @property
    def is_overridden(self) -> bool:
        """Whether the override stack is non-empty."""
        return bool(self._overridden)

    def override(self, provider: Any) -> OverridingContext:
        """Push an overriding provider onto the override stack.

        Values that are not providers are wrapped in :class:`Object`. Already
        produced values are not re-resolved.

        Args:
            provider: Overriding provider or plain value.

        Returns:
            A context manager that resets this override on exit.

        Raises:
            SelfOverrideError: If ``provider`` is this provider, or this
                provider is reachable through the chain of current overrides
                of ``provider``.

        """
        if provider is self:
            msg = f"Provider {self!r} could not be overridden with itself."
            raise SelfOverrideError(msg)
        if not is_provider(provider):
            provider = Object(provider)

        current = provider.last_overriding
        while current is not None:
            if current is self:
                msg = f"Provider {self!r} could not be overridden with {provider!r}: it overrides itself through {provider!r}."
                raise SelfOverrideError(msg)
            current = current.last_overriding

        self._overridden += (provider,)
        self._last_overriding = provider
        logger.debug("Provider %r overridden with %r (depth=%d)", self, provider, len(self._overridden))
        return OverridingContext(self, provider)

    def reset_last_overriding(self) -> None:
        """Pop the most recent override.

        Raises:
            NotOverriddenError: If the override stack is empty.

        """
        if not self._overridden:
            msg = f"Provider {self!r} is not overridden."
            raise NotOverriddenError(msg)
        self._overridden = self._overridden[:-1]
        self._last_overriding = self._overridden[-1] if self._overridden else None

    def reset_override(self) -> None:
        """Clear the whole override stack."""
        self._overridden = ()
        self._last_overriding = None

    def remove_overriding(self, provider: Provider) -> bool:
        """Remove the most recent stack entry that is ``provider``.

        Unlike ``reset_last_overriding`` this removes a specific override, so
        newer overrides pushed on top of it stay active.

        Args:
            provider: Overriding provider previously passed to ``override``
                (or the ``Object`` a plain value was wrapped in).

        Returns:
            Whether an entry was removed.

        """
        for index in range(len(self._overridden) - 1, -1, -1):
            if self._overridden[index] is provider:
                self._overridden = self._overridden[:index] + self._overridden[index + 1 :]
                self._last_overriding = self._overridden[-1] if self._overridden else None
                return True
        return False

    # endregion Overriding

    # region Construction arguments
    @property
    def provides(self) -> Any:
        return self._provides

    @property
    def args(self) -> tuple[Any, ...]:
        return self._args

    @property
    def kwargs(self) -> Mapping[str, Any]:
        return MappingProxyType(self._kwargs)

    def set_provides(self, provides: Any) -> Self:
        """Set what this provider calls to produce its value.

        Args:
            provides: Callable, or any object for providers that return it as is.

        """
        self._provides = provides
        return self

    def add_args(self, *args: Any) -> Self:
        """Append positional construction arguments.

        Args:
            *args: Values or providers appended after the stored arguments.

        """
        self._args += args
        return self

    def set_args(self, *args: Any) -> Self:
        """Replace positional construction arguments.

        Args:
            *args: New positional arguments.

        """
        self._args = args
        return self

    def clear_args(self) -> Self:
        """Drop every positional construction argument."""
        self._args = ()
        return self

    def add_kwargs(self, **kwargs: Any) -> Self:
        """Add keyword construction arguments, replacing same-named ones.

        Args:
            **kwargs: Values or providers by keyword.

        """
        self._kwargs.update(kwargs)
        return self

    def set_kwargs(self, **kwargs: Any) -> Self:
        """Replace keyword construction arguments.

        Args:
            **kwargs: New keyword arguments.

        """
        self._kwargs = dict(kwargs)
        return self

    def clear_kwargs(self) -> Self:
        """Drop every keyword construction argument."""
        self._kwargs = {}
        return self

    # endregion Construction arguments

    @property
    def related(self) -> Iterator[Provider]:
        """Providers this one points at: overrides and provider arguments."""
        yield from self._overridden
        if is_provider(self._provides):
            yield self._provides
        yield from (arg for arg in self._args if is_provider(arg))
        yield from (value for value in self._kwargs.values() if is_provider(value))

    def traverse(self, types: Iterable[type[Any]] | None = None) -> Iterator[Provider]:
        """Traverse the providers related to this one.

        Args:
            types: Optional provider classes to filter the yielded providers by.

        """
        return traverse(*self.related, types=types)

    def _provide(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        if self._provides is None:
            msg = f"Provider {self!r} has nothing to provide; call set_provides() first."
            raise ProviderError(msg)

        positional = [_inject(arg) for arg in self._args]
        positional.extend(args)
        keyword = {name: _inject(value) for name, value in self._kwargs.items()}
        keyword.update(kwargs)
        return self._provides(*positional, **keyword)


class OverridingContext:
    """Reset an override when leaving a ``with`` block.

    Returned by ``Provider.override``; entering yields the overriding provider.
    """

    def __init__(self, overridden: Provider, overriding: Provider) -> None:
        self._overridden = overridden
        self._overriding = overriding

    def __enter__(self) -> Provider:
        return self._overriding

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        if self._overridden.is_overridden:
            self._overridden.reset_last_overriding()


class Object(Provider):
    """Provide the very object it was given."""

    def __init__(self, provides: Any = None) -> None:
        super().__init__()
        self._provides = provides

    def _provide(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        return self._provides


class Callable(Provider):
    """Call ``provides`` with injected arguments on every call.

    Examples:
        .. code-block:: python

            greeting = Callable("Hello, {}!".format, Object("world"))
            greeting()  # 'Hello, world!'

    """

    def __init__(self, provides: Any = None, *args: Any, **kwargs: Any) -> None:
        super().__init__()
        if provides is not None:
            self.set_provides(provides)
        self.add_args(*args)
        self.add_kwargs(**kwargs)

    def set_provides(self, provides: Any) -> Self:
        """Set the callable invoked on every call.

        Args:
            provides: Callable to invoke, or ``None`` to unset it.

        Raises:
            ProviderError: If ``provides`` is not callable.

        """
        if provides is not None and not callable(provides):
            msg = f"Provider {type(self).__qualname__} expects a callable to provide, got {provides!r}."
            raise ProviderError(msg)
        return super().set_provides(provides)


class Factory(Callable):
    """Build a new instance on every call.

    Subclasses may set ``provided_type`` to restrict which classes the factory
    accepts.
    """

    provided_type: ClassVar[type[Any] | None] = None

    def set_provides(self, provides: Any) -> Self:
        """Set the class instantiated on every call.

        Args:
            provides: Class to build, or ``None`` to unset it.

        Raises:
            ProviderError: If ``provided_type`` is set and ``provides`` is not
                a subclass of it.

        """
        provided_type = self.provided_type
        if (
            provides is not None
            and provided_type is not None
            and not (is_runtime_class(provides) and issubclass(provides, provided_type))
        ):
            msg = f"{type(self).__qualname__} can provide only {provided_type!r} instances, got {provides!r}."
            raise ProviderError(msg)
        return super().set_provides(provides)

    @property
    def cls(self) -> Any:
        return self._provides


class Singleton(Factory):
    """Build an instance on the first call and return it until ``reset``."""

    def __init__(self, provides: Any = None, *args: Any, **kwargs: Any) -> None:
        self._instance: Any = _UNSET
        super().__init__(provides, *args, **kwargs)

    def reset(self) -> None:
        """Drop the cached instance."""
        self._instance = _UNSET

    def _provide(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        if self._instance is _UNSET:
            self._instance = super()._provide(args, kwargs)
        return self._instance


class ChildProvider(Provider):
    """Provider that knows the container it is registered in.

    The registry assigns itself as ``parent`` on registration, which lets the
    provider report a dotted ``parent_name`` such as ``"services.db"``.
    """

    def __init__(self) -> None:
        super().__init__()
        self._parent: Any = None

    @property
    def parent(self) -> Any:
        return self._parent

    def assign_parent(self, parent: Any) -> None:
        """Replace the parent link.

        Args:
            parent: Container or provider holding this provider, or ``None``.

        """
        self._parent = parent

    @property
    def parent_name(self) -> str | None:
        """Dotted name of this provider within its parents, if it has any.

        Raises:
            CyclicParentError: If the parent chain loops.

        """
        return self._resolve_parent_name(set())

    def _resolve_parent_name(self, visited: set[int]) -> str | None:
        if self._parent is None:
            return None
        enter_parent_chain(visited, self)
        parent_name = resolve_parent_name(self._parent, visited)
        try:
            name = self._parent.resolve_provider_name(self)
        except ProviderNotFound:
            return None
        return f"{parent_name}.{name}" if parent_name else name


class Dependency(ChildProvider):
    """Declare a value that must be supplied from outside.

    The dependency is satisfied by overriding it (``provided_by`` is an alias
    of ``override``) or by a ``default``. Produced values are checked against
    ``instance_of``.

    Examples:
        .. code-block:: python

            database_url = Dependency(instance_of=str)
            database_url.provided_by(Object("sqlite://"))
            database_url()  # 'sqlite://'

    """

    def __init__(self, instance_of: type[Any] = object, default: Any = None) -> None:
        if not is_runtime_class(instance_of):
            msg = f"Dependency instance_of must be a class, got {instance_of!r}."
            raise TypeError(msg)
        super().__init__()
        self._instance_of = instance_of
        self._default: Provider | None = None
        if default is not None:
            self._default = default if is_provider(default) else Object(default)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        if self._last_overriding is not None:
            result = self._last_overriding(*args, **kwargs)
        elif self._default is not None:
            result = self._default(*args, **kwargs)
        else:
            msg = f'Dependency "{self.parent_name or repr(self)}" is not defined.'
            raise DependencyNotDefinedError(msg)

        if not isinstance(result, self._instance_of):
            msg = f"{result!r} is not an instance of {self._instance_of!r}."
            raise ProviderError(msg)
        return result

    def __repr__(self) -> str:
        return f"<{type(self).__module__}.{type(self).__qualname__}({self._instance_of!r}) at {id(self):#x}>"

    @property
    def instance_of(self) -> type[Any]:
        return self._instance_of

    @property
    def default(self) -> Provider | None:
        return self._default

    @property
    def is_defined(self) -> bool:
        """Whether a call can produce a value."""
        return self.is_overridden or self._default is not None

    def provided_by(self, provider: Any) -> OverridingContext:
        """Satisfy the dependency with ``provider``.

        Args:
            provider: Overriding provider or plain value.

        """
        return self.override(provider)

    @property
    def related(self) -> Iterator[Provider]:
        yield from super().related
        if self._default is not None:
            yield self._default


class DependenciesContainer(ChildProvider):
    """Describe the contract of a container supplied from outside.

    Each named member is a placeholder provider, usually a
    :class:`Dependency`. Accessing an unknown public name creates a
    ``Dependency`` placeholder for it. Overriding with a container overrides
    every same-named placeholder with the container's provider.

    Examples:
        .. code-block:: python

            gateways = DependenciesContainer()
            client = Factory(ApiClient, gateways.http)

            gateways.override(production_gateways)

    """

    def __init__(self, **dependencies: Provider) -> None:
        super().__init__()
        self._providers: dict[str, Provider] = {}
        self._overriding_records: list[list[tuple[Provider, Provider | None]]] = []
        self.set_providers(**dependencies)

    def __getattr__(self, name: str) -> Provider:
        if name.startswith("_"):
            raise AttributeError(name)
        providers = self.__dict__.get("_providers")
        if providers is None:
            raise AttributeError(name)
        if name not in providers:
            self.set_provider(name, Dependency())
        return providers[name]

    @property
    def providers(self) -> Mapping[str, Provider]:
        return MappingProxyType(self._providers)

    def set_provider(self, name: str, provider: Provider) -> None:
        """Set the member placeholder ``name``.

        When the set is currently overridden by a container, the new member is
        overridden by the container's same-named provider right away.

        Args:
            name: Member name.
            provider: Placeholder provider, usually a :class:`Dependency`.

        Raises:
            TypeError: If ``provider`` is not a provider.

        """
        if not is_provider(provider):
            msg = f"{type(self).__qualname__} members must be providers, got {provider!r}."
            raise TypeError(msg)
        replaced = self._providers.get(name)
        self._providers[name] = provider
        if replaced is not None and replaced is not provider:
            detach_child(self, replaced, self._providers.values())
        if isinstance(provider, ChildProvider):
            provider.assign_parent(self)
        overriding_container = self._overriding_container()
        if overriding_container is not None:
            overriding_provider = overriding_container.providers.get(name)
            if overriding_provider is not None:
                provider.override(overriding_provider)
                self._overriding_records[-1].append((provider, provider.last_overriding))

    def set_providers(self, **providers: Provider) -> None:
        """Set several member placeholders.

        Args:
            **providers: Placeholder providers by member name.

        """
        for name, provider in providers.items():
            self.set_provider(name, provider)

    def resolve_provider_name(self, provider: Provider) -> str:
        """Return the member name of ``provider``.

        Args:
            provider: Member provider to look up by identity.

        Raises:
            ProviderNotFound: If ``provider`` is not a member.

        """
        for name, member in self._providers.items():
            if member is provider:
                return name
        msg = f"Can not resolve name for provider {provider!r}."
        raise ProviderNotFound(msg)

    def override(self, provider: Any) -> OverridingContext:
        """Override the placeholder set, member by member when given a container.

        Args:
            provider: Container whose providers override same-named members,
                or any provider or value overriding the set as a whole.

        Returns:
            A context manager that resets this override on exit.

        """
        context = super().override(provider)
        record: list[tuple[Provider, Provider | None]] = []
        self._overriding_records.append(record)
        if is_container(provider):
            for name, overriding_provider in provider.providers.items():
                member = self._providers.get(name)
                if member is None:
                    # set_provider overrides new placeholders and records them
                    self.set_provider(name, Dependency())
                    continue
                member.override(overriding_provider)
                record.append((member, member.last_overriding))
        return context

    def reset_last_overriding(self) -> None:
        """Reset the most recent override of the set and of its members.

        Only the member overrides that override pushed are removed; overrides
        made directly on members since then stay active.

        Raises:
            NotOverriddenError: If the set is not overridden.

        """
        super().reset_last_overriding()
        for member, overriding in reversed(self._overriding_records.pop()):
            if overriding is not None:
                member.remove_overriding(overriding)

    def remove_overriding(self, provider: Provider) -> bool:
        """Remove a specific override of the set together with its member overrides.

        Args:
            provider: Overriding provider previously passed to ``override``
                (or the ``Object`` a container or value was wrapped in).

        Returns:
            Whether an entry was removed.

        """
        for index in range(len(self._overridden) - 1, -1, -1):
            if self._overridden[index] is provider:
                record = self._overriding_records.pop(index)
                super().remove_overriding(provider)
                for member, overriding in reversed(record):
                    if overriding is not None:
                        member.remove_overriding(overriding)
                return True
        return False

    def reset_override(self) -> None:
        """Reset every override of the set and of its members."""
        super().reset_override()
        self._overriding_records.clear()
        for member in self._providers.values():
            member.reset_override()

    @property
    def related(self) -> Iterator[Provider]:
        yield from self._providers.values()
        yield from super().related

    def _overriding_container(self) -> Any:
        last_overriding = self._last_overriding
        if last_overriding is None:
            return None
        if is_container(last_overriding):
            return last_overriding
        if isinstance(last_overriding, Object) and is_container(last_overriding.provides):
            return last_overriding.provides
        return None


class Container(ChildProvider):
    """Provide a whole nested container.

    Attribute access is delegated to the wrapped container, so
    ``services.db`` returns the ``db`` provider of the nested container.
    Calling the provider returns the wrapped container, or the overriding
    value when overridden.

    Args:
        container_cls: Container class instantiated when ``container`` is not
            given. The new instance gets this provider as its parent.
        container: Existing container instance to wrap.
        **overriding_providers: Providers applied as overrides to same-named
            providers of the wrapped container.

    """

    def __init__(
        self,
        container_cls: type[Any] | None = None,
        container: Any = None,
        **overriding_providers: Any,
    ) -> None:
        super().__init__()
        self._container_cls = container_cls
        self._overriding_providers = overriding_providers
        if container is None and container_cls is not None:
            container = container_cls()
            container.assign_parent(self)
        self._container = container

        if self._container is not None and self._overriding_providers:
            self.apply_overridings()

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        container = self.__dict__.get("_container")
        if container is None:
            msg = f"Container provider {self!r} wraps no container; {name!r} is unavailable."
            raise ProviderNotFound(msg)
        return getattr(container, name)

    def __repr__(self) -> str:
        return f"<{type(self).__module__}.{type(self).__qualname__}({self._container!r}) at {id(self):#x}>"

    @property
    def container(self) -> Any:
        return self._container

    def apply_overridings(self) -> None:
        """Override wrapped providers with the ones given at construction."""
        for name, overriding_provider in self._overriding_providers.items():
            getattr(self._container, name).override(overriding_provider)

    def resolve_provider_name(self, provider: Provider) -> str:
        """Return the name ``provider`` has in the wrapped container.

        Args:
            provider: Provider of the wrapped container.

        Raises:
            ProviderNotFound: If no container is wrapped or it does not hold
                ``provider``.

        """
        if self._container is None:
            msg = f"Can not resolve name for provider {provider!r}."
            raise ProviderNotFound(msg)
        return self._container.resolve_provider_name(provider)

    @property
    def related(self) -> Iterator[Provider]:
        if self._container is not None:
            yield from self._container.providers.values()
        yield from super().related

    def _provide(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        if self._container is None:
            msg = f"Container provider {self!r} wraps no container."
            raise ProviderError(msg)
        return self._container


def is_provider(candidate: object) -> bool:
    """Return true when ``candidate`` is a provider instance.

    Args:
        candidate: Value being checked.

    """
    return isinstance(candidate, Provider)


def _inject(value: Any) -> Any:
    return value() if is_provider(value) else value


def traverse(*providers: Provider, types: Iterable[type[Any]] | None = None) -> Iterator[Provider]:
    """Walk providers and everything related to them, breadth first.

    Each reachable provider is yielded at most once, so cyclic graphs
    terminate. The result is a single-use iterator; call again to walk again.

    Args:
        *providers: Starting providers.
        types: Optional provider classes; only instances of them are yielded,
            although every provider is still walked through.

    Examples:
        .. code-block:: python

            singletons = list(traverse(*container.providers.values(), types=[Singleton]))

    """
    type_filter = tuple(types) if types is not None else None
    visited: set[int] = set()
    to_visit: deque[Provider] = deque(providers)

    while to_visit:
        visiting = to_visit.popleft()
        if id(visiting) in visited:
            continue
        visited.add(id(visiting))
        to_visit.extend(provider for provider in visiting.related if id(provider) not in visited)

        if type_filter is None or isinstance(visiting, type_filter):
            yield visiting


__all__ = [
    "Callable",
    "ChildProvider",
    "Container",
    "DependenciesContainer",
    "Dependency",
    "Factory",
    "Object",
    "OverridingContext",
    "Provider",
    "Singleton",
    "is_provider",
    "traverse",
]
