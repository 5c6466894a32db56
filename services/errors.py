"""Exceptions raised by the query engine and the reading store."""

from __future__ import annotations


class ValidationError(ValueError):
    """Caller input was rejected; the message is safe to show to clients."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidStatError(ValidationError):
    pass


class InvalidSensorListError(ValidationError):
    pass


class InvalidMetricListError(ValidationError):
    pass


class InvalidWindowError(ValidationError):
    pass


class InvalidMetricTypeError(ValidationError):
    pass


class ReadingStoreError(RuntimeError):
    """The backing reading store could not serve a request."""
