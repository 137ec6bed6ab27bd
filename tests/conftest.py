"""Shared pytest fixtures for inj tests."""

import pytest

from inj.containers import Container
from inj.providers import Dependency


@pytest.fixture()
def container() -> Container:
    """Empty container accepting any provider."""
    return Container()


@pytest.fixture()
def dependencies_only_container() -> Container:
    """Container restricted to Dependency providers."""
    return Container(provider_type=Dependency)
