"""
Exception types for querytrace.

Handlers installed into the driver never raise; these types surface only
from the configuration layer, or are used internally to label faults that
the bridge records and swallows.
"""

from typing import Optional


class QueryTraceError(Exception):
    """Base class for all querytrace errors."""


class ConfigurationError(QueryTraceError):
    """Raised when tracing settings are invalid or cannot be applied."""


class InstrumentationFault(QueryTraceError):
    """
    An internal failure of the bridge itself.

    Faults are recovered locally and counted in diagnostics; they are never
    propagated to the driver.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
