from __future__ import annotations

import pytest
from pydantic import ValidationError

from inj._internal.schema_models import ProviderNode, SchemaDocument, is_container_node


def test_document_defaults_version() -> None:
    document = SchemaDocument.model_validate({"container": {}})

    assert document.version == "1"
    assert document.container == {}


@pytest.mark.parametrize("version", ["1", 1, 1.0])
def test_document_normalizes_numeric_versions(version: object) -> None:
    assert SchemaDocument.model_validate({"version": version, "container": {}}).version == "1"


@pytest.mark.parametrize("version", ["2", 2, "1.1"])
def test_document_rejects_unsupported_versions(version: object) -> None:
    with pytest.raises(ValidationError, match="unsupported schema version"):
        SchemaDocument.model_validate({"version": version, "container": {}})


def test_document_ignores_unknown_top_level_keys() -> None:
    document = SchemaDocument.model_validate({"container": {}, "description": "ignored"})

    assert not hasattr(document, "description")


def test_document_requires_container() -> None:
    with pytest.raises(ValidationError):
        SchemaDocument.model_validate({"version": "1"})


def test_provider_node_defaults() -> None:
    node = ProviderNode.model_validate({"provider": "Factory"})

    assert node.args == []
    assert node.kwargs == {}
    assert node.provides is None
    assert node.has_provides is False


def test_provider_node_tracks_explicit_null_provides() -> None:
    node = ProviderNode.model_validate({"provider": "Object", "provides": None})

    assert node.has_provides is True


@pytest.mark.parametrize(
    "data",
    [
        {"provider": ""},
        {"provider": "Factory", "unknown": 1},
        {"provider": "Factory", "args": "not-a-list"},
        {"provider": "Factory", "kwargs": ["not", "a", "mapping"]},
        {"provides": "builtins.dict"},
    ],
)
def test_provider_node_rejects_malformed_data(data: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        ProviderNode.model_validate(data)


def test_container_nodes_have_no_provider_key() -> None:
    assert is_container_node({"db": {"provider": "Provider"}}) is True
    assert is_container_node({"provider": "Provider"}) is False
