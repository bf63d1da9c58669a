# app/errors.py
"""
Exception hierarchy for the alert pipeline.

DataAccessError is the only failure that crosses the data-access boundary;
callers decide how much of it a user gets to see (the public endpoint sees
nothing of it, operators get a short message).
"""

from typing import Optional


class AlertPipelineError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        super().__init__(message)
        self.message = message


class DataAccessError(AlertPipelineError):
    """The data store rejected or could not complete an operation."""

    def __init__(self, operation: str, table: str, message: str = "", cause: Optional[Exception] = None):
        super().__init__(f"{operation} on '{table}' failed: {message}" if message else f"{operation} on '{table}' failed")
        self.operation = operation
        self.table = table
        self.cause = cause


class GeolocationError(AlertPipelineError):
    """The submitting device could not provide a position."""
