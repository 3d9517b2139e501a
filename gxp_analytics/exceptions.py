"""Exceptions for validation analytics."""

from typing import Optional


class AnalyticsError(Exception):
    """Base exception for validation analytics."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class InvalidFilterError(AnalyticsError, ValueError):
    """Raised when a filter specification cannot be interpreted."""

    def __init__(self, field: str, value: object, reason: str):
        self.value = value
        super().__init__(f"Invalid filter {field}={value!r}: {reason}", field=field)


class RecordLoadError(AnalyticsError):
    """Raised when a record snapshot file cannot be read."""

    def __init__(self, source: str, reason: str):
        self.source = source
        super().__init__(f"Cannot load validation records from {source}: {reason}")
