from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest

from inj.providers import Provider


class ProviderOverrides:
    """Override providers for the duration of a single test.

    Every override made through this helper is reset, most recent first,
    when the test finishes. Only the entries this helper pushed are removed,
    so overrides reset by the test itself are skipped.
    """

    def __init__(self) -> None:
        self._overridden: list[tuple[Provider, Provider | None]] = []

    def __call__(self, provider: Provider, overriding: Any) -> Provider:
        """Override ``provider`` with ``overriding`` until teardown.

        Args:
            provider: Provider to override.
            overriding: Overriding provider or plain value.

        Returns:
            The overridden provider, for chaining in fixtures.

        """
        provider.override(overriding)
        self._overridden.append((provider, provider.last_overriding))
        return provider

    def reset(self) -> None:
        """Reset every override made through this helper."""
        while self._overridden:
            provider, overriding = self._overridden.pop()
            if overriding is not None:
                provider.remove_overriding(overriding)


@pytest.fixture()
def inj_override() -> Iterator[ProviderOverrides]:
    """Fixture hook returning a per-test provider override helper.

    Examples:
        .. code-block:: python

            pytest_plugins = ["inj.integrations.pytest_plugin"]


            def test_uses_fake_db(inj_override: ProviderOverrides) -> None:
                inj_override(container.db, Object(FakeDatabase()))
                assert isinstance(container.db(), FakeDatabase)

    """
    overrides = ProviderOverrides()
    yield overrides
    overrides.reset()


__all__ = ["ProviderOverrides", "inj_override"]
