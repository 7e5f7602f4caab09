"""
Attribute and status mapping for driver records.

Converts errors, counters and identifying fields from driver records into
OpenTelemetry span attributes and terminal status.
"""

from typing import Any, Optional

from opentelemetry.trace import Status, StatusCode
from opentelemetry.util.types import Attributes

from querytrace import safe

ERROR = "error"
ERROR_MESSAGE = "error.message"
ERROR_TYPE = "error.type"
QUERY = "query"
PARAMS = "params"
PLAN = "plan"
IDEMPOTENT = "idempotent"
ATTEMPTS = "attempts"

INTERMEDIATE_EVENT = "intermediate"


def error_attributes(error: Optional[BaseException]) -> dict[str, Any]:
    """
    Attributes describing the presence of an error.

    Args:
        error: Error reported by the driver, or None on success

    Returns:
        ``{"error": False}`` on success; otherwise the error flag, message
        and type
    """
    if error is None:
        return {ERROR: False}
    return {
        ERROR: True,
        ERROR_MESSAGE: safe.error_text(error),
        ERROR_TYPE: safe.error_type(error),
    }


def intermediate_attributes(error: Optional[BaseException]) -> dict[str, Any]:
    """Attributes of a non-terminal span event."""
    if error is None:
        return {ERROR: False}
    return {ERROR: True, ERROR_MESSAGE: safe.error_text(error)}


def status_for(error: Optional[BaseException]) -> Status:
    """Terminal span status derived from error presence."""
    if error is None:
        return Status(StatusCode.OK)
    return Status(StatusCode.ERROR, safe.error_text(error))


def counter(name: str, value: int) -> dict[str, int]:
    """Integer counter attribute."""
    return {name: int(value)}


def query_attributes(query: str, parameters: Any = None, with_params: bool = True) -> Attributes:
    """Identifying attributes of a query-bearing start record."""
    attributes = {QUERY: safe.stringer(query)}
    if with_params:
        attributes[PARAMS] = safe.stringer(parameters)
    return attributes
