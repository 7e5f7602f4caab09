"""
Guarded conversions that never raise.

Driver values (query parameters, results, errors) are arbitrary objects whose
``__str__`` may fail. Every conversion here catches the failure at its own
call site and substitutes a fixed sentinel.
"""

import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

UNPRINTABLE = "<unprintable>"


def stringer(value: Any) -> str:
    """
    Render a value as a string.

    Args:
        value: Any object; None renders as an empty string

    Returns:
        ``str(value)``, or UNPRINTABLE if the conversion raised
    """
    if value is None:
        return ""
    try:
        return str(value)
    except Exception as e:
        logger.debug(f"String conversion of {type(value).__name__} failed: {type(e).__name__}")
        return UNPRINTABLE


def error_text(error: Optional[BaseException]) -> str:
    """Message of an error, guarded like stringer()."""
    return stringer(error)


def error_type(error: Optional[BaseException]) -> str:
    """Class name of an error, or an empty string."""
    if error is None:
        return ""
    return type(error).__name__


def result_error(result: Any) -> Optional[BaseException]:
    """
    Error carried by a driver result set.

    A result may expose its deferred failure through an ``err()`` method or
    an ``error`` attribute. A failure to read it is logged and treated as no
    error.
    """
    if result is None:
        return None
    try:
        err = getattr(result, "err", None)
        if callable(err):
            value = err()
        else:
            value = getattr(result, "error", None)
    except Exception as e:
        logger.debug(f"Reading error of {type(result).__name__} failed: {type(e).__name__}")
        return None
    if isinstance(value, BaseException):
        return value
    return None
