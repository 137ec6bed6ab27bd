from __future__ import annotations

import pytest

from inj.containers import Container
from inj.exceptions import (
    DependencyNotDefinedError,
    NotOverriddenError,
    ProviderError,
    SelfOverrideError,
)
from inj.providers import (
    Callable,
    DependenciesContainer,
    Dependency,
    Factory,
    Object,
    Provider,
    Singleton,
)


class Engine:
    def __init__(self, power: int = 100, *, fuel: str = "petrol") -> None:
        self.power = power
        self.fuel = fuel


class ElectricEngine(Engine):
    pass


# region Overriding


def test_override_with_itself_fails() -> None:
    provider = Provider()

    with pytest.raises(SelfOverrideError, match="with itself"):
        provider.override(provider)

    assert provider.overridden == ()


def test_override_fails_when_overriding_chain_leads_back() -> None:
    first = Provider()
    second = Provider()
    second.override(first)

    with pytest.raises(SelfOverrideError):
        first.override(second)

    assert first.overridden == ()


def test_override_then_reset_last_overriding_restores_stack() -> None:
    provider = Provider()
    first = Object(1)
    second = Object(2)
    provider.override(first)
    before = provider.overridden

    provider.override(second)
    provider.reset_last_overriding()

    assert provider.overridden == before
    assert provider.last_overriding is first


def test_override_stack_is_lifo() -> None:
    provider = Object("base")
    provider.override(Object("first"))
    provider.override(Object("second"))

    assert provider() == "second"
    provider.reset_last_overriding()
    assert provider() == "first"
    provider.reset_last_overriding()
    assert provider() == "base"
    assert provider.last_overriding is None


def test_reset_last_overriding_on_empty_stack_fails() -> None:
    with pytest.raises(NotOverriddenError):
        Provider().reset_last_overriding()


@pytest.mark.parametrize("overrides", [0, 1, 3])
def test_reset_override_always_empties_stack(overrides: int) -> None:
    provider = Provider()
    for index in range(overrides):
        provider.override(Object(index))

    provider.reset_override()

    assert provider.overridden == ()
    assert provider.last_overriding is None
    assert provider.is_overridden is False


def test_override_wraps_plain_values_in_object() -> None:
    provider = Factory(Engine)

    provider.override(ElectricEngine)

    assert isinstance(provider.last_overriding, Object)
    assert provider() is ElectricEngine


def test_override_takes_precedence_recursively() -> None:
    base = Factory(Engine)
    middle = Factory(ElectricEngine)
    top = Object("top")
    base.override(middle)

    assert isinstance(base(), ElectricEngine)

    middle.override(top)
    assert base() == "top"


def test_override_context_manager_resets_on_exit() -> None:
    provider = Object("base")

    with provider.override(Object("temporary")) as overriding:
        assert provider() == "temporary"
        assert provider.last_overriding is overriding

    assert provider() == "base"
    assert provider.is_overridden is False


def test_override_context_tolerates_reset_inside_block() -> None:
    provider = Object("base")

    with provider.override(2):
        provider.reset_override()

    assert provider() == "base"


def test_remove_overriding_keeps_newer_overrides() -> None:
    provider = Object("base")
    first = Object("first")
    second = Object("second")
    provider.override(first)
    provider.override(second)

    assert provider.remove_overriding(first) is True
    assert provider.overridden == (second,)
    assert provider() == "second"

    assert provider.remove_overriding(first) is False
    assert provider.remove_overriding(second) is True
    assert provider.last_overriding is None


# endregion Overriding

# region Construction arguments


def test_base_provider_without_provides_cannot_produce() -> None:
    with pytest.raises(ProviderError, match="nothing to provide"):
        Provider()()


def test_base_provider_calls_provides_with_attached_arguments() -> None:
    provider = Provider().set_provides(Engine).add_args(250).add_kwargs(fuel="diesel")

    engine = provider()

    assert isinstance(engine, Engine)
    assert (engine.power, engine.fuel) == (250, "diesel")


def test_arguments_are_added_incrementally() -> None:
    provider = Provider().add_args(1).add_args(2, 3).add_kwargs(a=1).add_kwargs(b=2, a=3)

    assert provider.args == (1, 2, 3)
    assert dict(provider.kwargs) == {"a": 3, "b": 2}

    provider.set_args(9).set_kwargs(c=4)
    assert provider.args == (9,)
    assert dict(provider.kwargs) == {"c": 4}

    provider.clear_args().clear_kwargs()
    assert provider.args == ()
    assert dict(provider.kwargs) == {}


def test_call_time_arguments_extend_and_override_stored_ones() -> None:
    provider = Callable(lambda *args, **kwargs: (args, kwargs), 1, a=1, b=2)

    assert provider(2, b=3) == ((1, 2), {"a": 1, "b": 3})


def test_provider_arguments_are_injected_by_calling_them() -> None:
    power = Object(500)
    provider = Factory(Engine, power, fuel=Callable(str.upper, "hydrogen"))

    engine = provider()

    assert engine.power == 500
    assert engine.fuel == "HYDROGEN"


def test_callable_rejects_non_callable_provides() -> None:
    with pytest.raises(ProviderError, match="expects a callable"):
        Callable(42)


def test_factory_builds_new_instances() -> None:
    provider = Factory(Engine)

    assert provider() is not provider()
    assert provider.cls is Engine


def test_factory_provided_type_restricts_classes() -> None:
    class EngineFactory(Factory):
        provided_type = Engine

    assert EngineFactory(ElectricEngine)().power == 100

    with pytest.raises(ProviderError, match="can provide only"):
        EngineFactory(dict)


def test_singleton_caches_until_reset() -> None:
    provider = Singleton(Engine)

    first = provider()
    assert provider() is first

    provider.reset()
    assert provider() is not first


def test_related_includes_overrides_and_provider_arguments() -> None:
    provides = Object(Engine)
    arg = Object(1)
    kwarg = Object(2)
    overriding = Object(3)
    provider = Provider().set_provides(provides).add_args(arg, "plain").add_kwargs(power=kwarg, fuel="x")
    provider.override(overriding)

    related = list(provider.related)

    assert related == [overriding, provides, arg, kwarg]


def test_providers_compare_by_identity() -> None:
    first = Object(1)
    second = Object(1)

    assert first != second
    assert len({first, second}) == 2


# endregion Construction arguments

# region Dependency


def test_dependency_without_override_or_default_is_not_defined() -> None:
    dependency = Dependency(instance_of=int)

    assert dependency.is_defined is False
    with pytest.raises(DependencyNotDefinedError, match="is not defined"):
        dependency()


def test_dependency_uses_default() -> None:
    dependency = Dependency(instance_of=int, default=5)

    assert dependency.is_defined is True
    assert dependency() == 5
    assert isinstance(dependency.default, Object)


def test_dependency_provided_by_override() -> None:
    dependency = Dependency(instance_of=Engine, default=Factory(Engine))

    dependency.provided_by(Factory(ElectricEngine))

    assert isinstance(dependency(), ElectricEngine)


def test_dependency_checks_instance_of() -> None:
    dependency = Dependency(instance_of=int)
    dependency.override(Object("not an int"))

    with pytest.raises(ProviderError, match="is not an instance of"):
        dependency()


def test_dependency_rejects_non_class_instance_of() -> None:
    with pytest.raises(TypeError):
        Dependency(instance_of="int")  # type: ignore[arg-type]


def test_dependency_related_includes_default() -> None:
    default = Object(1)
    dependency = Dependency(instance_of=int, default=default)

    assert list(dependency.related) == [default]


# endregion Dependency

# region DependenciesContainer


def test_dependencies_container_creates_placeholders_on_access() -> None:
    gateways = DependenciesContainer()

    http = gateways.http

    assert isinstance(http, Dependency)
    assert gateways.http is http
    assert dict(gateways.providers) == {"http": http}
    assert http.parent is gateways
    assert http.parent_name == "http"


def test_dependencies_container_private_names_are_not_placeholders() -> None:
    gateways = DependenciesContainer()

    with pytest.raises(AttributeError):
        _ = gateways._missing

    assert dict(gateways.providers) == {}


def test_dependencies_container_override_with_container(container: Container) -> None:
    gateways = DependenciesContainer(http=Dependency(instance_of=str))
    container.http = Object("real-http")
    container.smtp = Object("real-smtp")

    gateways.override(container)

    assert gateways.http() == "real-http"
    assert gateways.smtp() == "real-smtp"

    gateways.reset_last_overriding()

    assert gateways.http.is_overridden is False
    assert gateways.smtp.is_overridden is False


def test_dependencies_container_applies_active_override_to_new_placeholders(container: Container) -> None:
    gateways = DependenciesContainer()
    container.queue = Object("real-queue")
    gateways.override(container)

    assert gateways.providers["queue"]() == "real-queue"


def test_dependencies_container_reset_keeps_newer_member_override(container: Container) -> None:
    gateways = DependenciesContainer(http=Dependency(instance_of=str))
    container.http = Object("container-http")
    gateways.override(container)
    gateways.http.override(Object("direct-http"))

    gateways.reset_last_overriding()

    assert gateways.http() == "direct-http"


def test_dependencies_container_reset_covers_members_added_later(container: Container) -> None:
    gateways = DependenciesContainer()
    container.queue = Object("real-queue")
    gateways.override(container)
    queue = gateways.queue

    gateways.reset_last_overriding()

    assert queue.is_overridden is False


def test_dependencies_container_remove_overriding_resets_members(container: Container) -> None:
    gateways = DependenciesContainer(http=Dependency(instance_of=str))
    container.http = Object("first")
    gateways.override(container)
    overriding = gateways.last_overriding
    gateways.override(Object("whole-set"))

    assert gateways.remove_overriding(overriding) is True

    assert gateways.http.is_overridden is False
    assert gateways.is_overridden is True


def test_dependencies_container_replaced_member_loses_parent() -> None:
    old = Dependency()
    gateways = DependenciesContainer(http=old)

    gateways.set_provider("http", Dependency())

    assert old.parent is None


def test_dependencies_container_related_includes_members() -> None:
    http = Dependency()
    gateways = DependenciesContainer(http=http)

    assert http in list(gateways.related)


# endregion DependenciesContainer
