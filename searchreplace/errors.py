"""
Error classes for searchreplace.

These error types separate configuration problems from runtime failures:
- ConfigurationError: Invalid or missing setup, caught before any I/O
- GatewayError: Raised by database gateways while talking to the backend
- ExecutionError: Wraps the fatal cause of a failed run

Classification contract:
- ConnectionError and QueryError are fatal to a run (the worklist may be invalid)
- WriteError is row-scoped and never aborts a run
- The raise/collect toggle on SearchReplace only affects ConfigurationError delivery
"""

from typing import Optional


class SearchReplaceError(Exception):
    """Base exception for searchreplace."""
    pass


class ConfigurationError(SearchReplaceError):
    """
    Configuration error - invalid or missing setup.

    Examples:
    - Empty database host/resource
    - Empty username or database name
    - Negative or non-integral offset, limit or batch size
    - Non-boolean include-all flag
    - Calling execute() while a run is already in flight

    Raised before any gateway I/O happens.
    """
    pass


class GatewayError(SearchReplaceError):
    """Base class for errors raised by a database gateway."""
    pass


class ConnectionError(GatewayError):
    """
    Connection error - the gateway cannot reach the backend.

    Examples:
    - Host unreachable / authentication failed
    - Connection dropped mid-run
    - Gateway closed while a run is in flight

    Fatal: the run transitions to FAILED.
    """
    pass


class QueryError(GatewayError):
    """
    Read error - listing tables or fetching rows failed.

    Fatal: the run transitions to FAILED.
    """
    pass


class WriteError(GatewayError):
    """
    Write error - a single row could not be written back.

    Row-scoped: recorded in the report, scanning continues.
    """

    def __init__(self, message: str, table: Optional[str] = None, key: Optional[dict] = None):
        self.table = table
        self.key = key
        super().__init__(message)


class ExecutionError(SearchReplaceError):
    """Raised (or reported) when a run aborts on a fatal gateway error."""

    def __init__(self, table: Optional[str], message: str, cause: Optional[Exception] = None):
        self.table = table
        self.cause = cause
        if table is None:
            super().__init__(f"Run failed: {message}")
        else:
            super().__init__(f"Table '{table}' failed: {message}")
