from __future__ import annotations


class NotifierError(Exception):
    """Base class for errors raised by the receipt notifier."""


class ConfigurationError(NotifierError):
    pass


class SourceUnavailable(NotifierError):
    """The spreadsheet could not be read or written."""


class WriteConflict(SourceUnavailable):
    """The spreadsheet rejected a write because of a concurrent modification."""


class SchemaChanged(NotifierError):
    """The header row was migrated; the fetched table is stale."""

    def __init__(self, column: str) -> None:
        super().__init__(f"Added missing column '{column}' to the header row.")
        self.column = column


class TransportError(NotifierError):
    """The messaging gateway failed to accept a request."""
