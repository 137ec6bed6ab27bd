from inj import providers
from inj.containers import Container, ProvidersOverridingContext, SingletonResetContext, WiringConfiguration
from inj.exceptions import (
    CyclicParentError,
    DependencyNotDefinedError,
    InjError,
    NotOverriddenError,
    ProviderError,
    ProviderNotFound,
    SchemaError,
    SelfOverrideError,
    UndefinedDependencies,
    WrongProviderType,
)
from inj.providers import (
    Callable,
    DependenciesContainer,
    Dependency,
    Factory,
    Object,
    Provider,
    Singleton,
    is_provider,
    traverse,
)
from inj.schema import (
    ImportSymbolResolver,
    SchemaProcessor,
    StringInjectionPolicy,
    build_schema,
)

__all__ = [
    "Callable",
    "Container",
    "CyclicParentError",
    "DependenciesContainer",
    "Dependency",
    "DependencyNotDefinedError",
    "Factory",
    "ImportSymbolResolver",
    "InjError",
    "NotOverriddenError",
    "Object",
    "Provider",
    "ProviderError",
    "ProviderNotFound",
    "ProvidersOverridingContext",
    "SchemaError",
    "SchemaProcessor",
    "SelfOverrideError",
    "Singleton",
    "SingletonResetContext",
    "StringInjectionPolicy",
    "UndefinedDependencies",
    "WiringConfiguration",
    "WrongProviderType",
    "build_schema",
    "is_provider",
    "providers",
    "traverse",
]
