"""Exceptions raised by the analytics services.

Insufficient data and upstream failures never raise; they degrade to
empty, flat or zero results. Only caller mistakes and a broken store
surface as exceptions.
"""


class AnalyticsError(Exception):
    """Base exception for analytics service errors."""

    pass


class InvalidInputError(AnalyticsError, ValueError):
    """A request parameter is out of range (e.g. a non-positive target)."""

    pass


class StorageError(AnalyticsError):
    """The snapshot/detail store could not be read or written.

    Wraps the underlying database exception, available as ``__cause__``.
    """

    def __init__(self, message: str, operation: str = ""):
        self.operation = operation
        super().__init__(message)


class NotFoundError(AnalyticsError, LookupError):
    """A referenced record (e.g. a strategy) does not exist."""

    pass
