"""Tests for the source registry and typed source factories."""

from __future__ import annotations

import pytest

from confidence_router.config.routing import RoutingConfig
from confidence_router.exceptions import ConfigurationError, UnknownSourceError
from confidence_router.sources import registry as registry_module
from confidence_router.sources.document_source import DocumentSource
from confidence_router.sources.http_source import HttpSource
from confidence_router.sources.registry import (
    SourceRegistry,
    build_registry,
    register_source_type,
    source_types,
)


def test_duplicate_names_rejected(fake_source):
    registry = SourceRegistry([fake_source("kb")])
    with pytest.raises(ConfigurationError, match="already registered"):
        registry.register(fake_source("kb"))


def test_lookup_and_priorities(registry_of, fake_source):
    registry = registry_of(fake_source("kb"), fake_source("web"))
    assert "kb" in registry
    assert "llm" not in registry
    assert registry.get("llm") is None
    assert len(registry) == 2
    assert registry.priorities() == {"kb": 1, "web": 4}


def test_build_registry_requires_external_sources(routing_config, fake_source):
    with pytest.raises(UnknownSourceError):
        build_registry(routing_config, [fake_source("kb")])


async def test_typed_sources_are_built_from_config(routing_config):
    data = routing_config.model_dump()
    data["sources"]["kb"] = {
        "type": "documents",
        "priority": 1,
        "options": {"documents": [{"title": "Keys", "content": "Rotate keys"}]},
    }
    for name in ("llm", "ms_docs", "web"):
        data["sources"][name] = {
            "type": "http",
            "priority": 2,
            "options": {"url": f"http://{name}.internal/answer"},
        }
    registry = build_registry(RoutingConfig.model_validate(data))
    try:
        assert isinstance(registry.get("kb"), DocumentSource)
        assert isinstance(registry.get("web"), HttpSource)
    finally:
        await registry.aclose()


def test_http_source_requires_url(routing_config, fake_source):
    data = routing_config.model_dump()
    data["sources"]["web"] = {"type": "http"}
    with pytest.raises(ConfigurationError, match="url"):
        build_registry(RoutingConfig.model_validate(data), [fake_source("kb")])


def test_unknown_source_type(routing_config):
    data = routing_config.model_dump()
    data["sources"]["kb"] = {"type": "carrier_pigeon"}
    with pytest.raises(ConfigurationError, match="carrier_pigeon"):
        build_registry(RoutingConfig.model_validate(data))


def test_extended_keeps_existing_instances(routing_config, fake_source):
    sources = [fake_source(n) for n in ("kb", "llm", "ms_docs", "web")]
    registry = build_registry(routing_config, sources)
    extended = registry.extended(routing_config)
    assert extended is not registry
    assert all(extended.get(s.name) is s for s in sources)


def test_custom_source_type(monkeypatch, routing_config, fake_source):
    monkeypatch.setattr(registry_module, "_SOURCE_TYPES", dict(registry_module._SOURCE_TYPES))
    register_source_type("fake", lambda name, spec: fake_source(name, spec.options["confidence"]))
    assert "fake" in source_types()

    data = routing_config.model_dump()
    data["sources"]["kb"] = {"type": "fake", "options": {"confidence": 42}}
    registry = build_registry(
        RoutingConfig.model_validate(data), [fake_source(n) for n in ("llm", "ms_docs", "web")]
    )
    assert registry.get("kb").confidence == 42


def test_external_type_is_reserved():
    with pytest.raises(ConfigurationError):
        register_source_type("external", lambda name, spec: None)
