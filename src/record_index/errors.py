"""Exceptions raised by the record index layer."""


class RecordIndexError(Exception):
    """Base class for every error raised by record_index."""


class ConfigurationError(RecordIndexError, ValueError):
    """Raised when an index is configured or invoked inconsistently."""


class RecordError(RecordIndexError, ValueError):
    """Raised when a record cannot be mapped onto an engine document."""


class QueryParseError(RecordIndexError):
    """Raised when free-text query syntax cannot be parsed."""

    def __init__(self, query: str, message: str) -> None:
        super().__init__(f"Cannot parse query {query!r}: {message}")
        self.query = query


class IndexOpenError(RecordIndexError):
    """Raised when the engine cannot open storage, a writer, or a searcher."""
