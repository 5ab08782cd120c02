"""Domain error types."""


class RelayError(Exception):
    """Base class for errors that terminate a chat request."""


class ConfigError(RelayError):
    """Raised when the configured model has no known context size."""


class ProviderTimeoutError(RelayError):
    """Raised when the provider is silent for longer than the configured timeout."""


class ProviderError(RelayError):
    """Raised when the upstream completion call or stream fails."""


class RequestCancelledError(RelayError):
    """Raised inside the producer when the consumer stopped reading."""


class PersistenceError(RelayError):
    """Raised by store gateways. Logged by the orchestrator, never surfaced to the caller."""
