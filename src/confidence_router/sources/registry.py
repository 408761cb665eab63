"""Registry of information sources and the factories that build them from config."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator

from confidence_router.config.routing import RoutingConfig, SourceSpec
from confidence_router.exceptions import ConfigurationError
from confidence_router.protocols.source import InformationSource
from confidence_router.sources.document_source import DocumentSource
from confidence_router.sources.http_source import HttpSource

SourceFactory = Callable[[str, SourceSpec], InformationSource]

_SOURCE_TYPES: dict[str, SourceFactory] = {
    "http": HttpSource.from_spec,
    "documents": DocumentSource.from_spec,
}


def register_source_type(type_name: str, factory: SourceFactory) -> None:
    """Make a new ``type:`` usable in routing YAML."""
    if type_name == "external":
        raise ConfigurationError("'external' is reserved for sources registered in code")
    _SOURCE_TYPES[type_name] = factory


def source_types() -> list[str]:
    return sorted(_SOURCE_TYPES)


class SourceRegistry:
    def __init__(self, sources: Iterable[InformationSource] = ()) -> None:
        self._sources: dict[str, InformationSource] = {}
        for source in sources:
            self.register(source)

    def register(self, source: InformationSource) -> None:
        if source.name in self._sources:
            raise ConfigurationError(f"Source '{source.name}' is already registered")
        self._sources[source.name] = source

    def get(self, name: str) -> InformationSource | None:
        return self._sources.get(name)

    def names(self) -> list[str]:
        return list(self._sources)

    def priorities(self) -> dict[str, int]:
        return {name: source.priority for name, source in self._sources.items()}

    def extended(self, config: RoutingConfig) -> SourceRegistry:
        """Return a new registry holding these sources plus any typed ones ``config`` adds.

        Raises ``UnknownSourceError`` if the config still references a source
        that neither exists here nor can be built from its ``type``.
        """
        registry = SourceRegistry(self._sources.values())
        for name, spec in config.sources.items():
            if not spec.enabled or spec.type == "external" or name in registry:
                continue
            factory = _SOURCE_TYPES.get(spec.type)
            if factory is None:
                raise ConfigurationError(
                    f"Source '{name}' has unknown type '{spec.type}'. Known: {source_types()}"
                )
            registry.register(factory(name, spec))
        config.validate_sources(registry.names())
        return registry

    async def aclose(self) -> None:
        for source in self._sources.values():
            close = getattr(source, "aclose", None)
            if close is not None:
                await close()

    def __contains__(self, name: object) -> bool:
        return name in self._sources

    def __iter__(self) -> Iterator[InformationSource]:
        return iter(self._sources.values())

    def __len__(self) -> int:
        return len(self._sources)


def build_registry(
    config: RoutingConfig, sources: Iterable[InformationSource] = ()
) -> SourceRegistry:
    """Create a registry from code-registered ``sources`` plus the config's typed sources."""
    return SourceRegistry(sources).extended(config)
