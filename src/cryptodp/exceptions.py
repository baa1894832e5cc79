"""Custom exceptions for the crypto data platform.

All component exceptions live here to avoid circular imports between the
streaming, storage, bus and agent layers.
"""


class PlatformError(Exception):
    """Base exception for all platform errors."""


class ConfigurationError(PlatformError):
    """Raised at startup when settings fail validation. Fatal."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("Invalid configuration: " + "; ".join(errors))


class MarketDataError(PlatformError):
    """Raised when the market data provider returns an unusable response."""


class LLMGenerationError(PlatformError):
    """Raised when the text generation service fails. Recoverable per cycle."""


class BusPublishError(PlatformError):
    """Raised when a record cannot be published to the message bus."""


class SinkWriteError(PlatformError):
    """Raised when one or more persistence sinks reject a write.

    Sinks that succeeded keep their copy; there is no rollback across sinks.
    """

    def __init__(self, failed: dict[str, BaseException]) -> None:
        self.failed = failed
        detail = ", ".join(f"{name}: {err}" for name, err in failed.items())
        super().__init__(f"Sink write failed ({detail})")


class StateTransitionError(PlatformError):
    """Raised on an illegal connection state transition."""
