"""Custom exception hierarchy for the confidence router."""


class RouterError(Exception):
    """Base exception for all router errors."""


class SourceError(RouterError):
    """A source failed to produce a result."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message


class SourceTimeoutError(SourceError):
    """A source did not answer within its timeout."""


class ConfigurationError(RouterError):
    """Error in system or routing configuration."""


class UnknownSourceError(ConfigurationError):
    """Routing configuration references a source that is not registered."""


class UnknownStrategyError(ConfigurationError):
    """A strategy name was requested that the routing config does not define."""


class CacheError(RouterError):
    """Error reading from or writing to the response cache."""
