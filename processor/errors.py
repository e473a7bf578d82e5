"""Exceptions raised by the ingestion pipeline."""


class IngestionError(Exception):
    """Base class for ingestion failures."""


class FetchError(IngestionError):
    """A source adapter could not fetch or parse its listings."""

    def __init__(self, source: str, cause):
        self.source = source
        self.cause = cause
        super().__init__(f"{source}: {cause}")


class ValidationError(IngestionError):
    """A single raw event was rejected."""


class ParseError(IngestionError):
    """A date field could not be parsed."""


class StoreError(IngestionError):
    """The key-value store rejected a read or write."""


class ConfigurationError(IngestionError):
    """The pipeline cannot be built from the supplied settings."""
