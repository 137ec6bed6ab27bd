from __future__ import annotations

from collections.abc import Iterable


class InjError(Exception):
    """Represent a base class for all inj-specific failures.

    Catch this type when you want to handle any inj error path without
    matching each concrete exception class individually.
    """


class WrongProviderType(InjError, TypeError):  # noqa: N818
    """Signal a registry insertion that violates the container provider type.

    Raised by ``Container.set_provider``, ``Container.set_providers`` and
    attribute assignment when the provider is not an instance of the
    container's ``provider_type``. The registry is left untouched.

    Typical fixes include registering a provider of the restricted kind or
    using a container class with a wider ``provider_type``.
    """


class SelfOverrideError(InjError):
    """Signal an attempt to override a provider or a container with itself.

    Raised by ``Provider.override`` when the overriding provider is the
    provider itself or resolves back to it through its own override chain,
    and by ``Container.override`` when a container overrides itself.
    """


class NotOverriddenError(InjError):
    """Signal a reset request on an empty override stack.

    Raised by ``reset_last_overriding`` on providers and containers. Use
    ``reset_override`` when the stack may be empty.
    """


class ProviderNotFound(InjError, AttributeError):  # noqa: N818
    """Signal a provider name or path lookup miss.

    Raised by ``Container.resolve_provider_name``, attribute access of an
    unregistered provider name and schema cross-reference resolution. It is
    also an ``AttributeError`` so ``getattr(container, name, default)`` and
    ``hasattr`` keep working.
    """


class SchemaError(InjError):
    """Signal an invalid schema document.

    Raised by ``SchemaProcessor.process`` and ``build_schema`` when the
    ``container`` section is missing, a node is malformed, a provider class
    cannot be resolved, or an import reference fails. Import failures are
    chained as ``__cause__``.
    """


class UndefinedDependencies(InjError):  # noqa: N818
    """Signal a container that still has undefined dependency placeholders.

    Raised by ``Container.check_dependencies``. ``names`` lists the dotted
    names of every ``Dependency`` provider that has neither an override nor
    a default.
    """

    def __init__(self, container_name: str, names: Iterable[str]) -> None:
        self.container_name = container_name
        self.names = tuple(names)
        super().__init__(
            f'Container "{container_name}" has undefined dependencies: '
            f"{', '.join(repr(name) for name in self.names)}",
        )


class CyclicParentError(InjError):
    """Signal a parent chain that loops back on itself.

    Raised by ``parent_name`` on containers and child providers when
    following ``parent`` links revisits an already seen object.

    Typical fix is to stop assigning a descendant as the parent of one of its
    ancestors.
    """


class ProviderError(InjError):
    """Signal a provider that cannot produce a value.

    Raised when a provider has nothing to call, or when a ``Dependency``
    override produces a value of the wrong type.
    """


class DependencyNotDefinedError(ProviderError):
    """Signal a call to a ``Dependency`` without override or default.

    Typical fix is ``dependency.override(provider)`` (or ``provided_by``)
    before the dependency is called.
    """
