"""
Details mask - selects which driver operation kinds are traced.
"""

from enum import IntFlag
from typing import Iterable, Union

from querytrace.errors import ConfigurationError


class Details(IntFlag):
    """Bitset of operation families the bridge instruments."""

    NONE = 0
    SCRIPTING_EVENTS = 1 << 0
    RETRY_EVENTS = 1 << 1

    ALL = SCRIPTING_EVENTS | RETRY_EVENTS

    @classmethod
    def from_names(cls, names: Union[str, Iterable[str]]) -> "Details":
        """
        Build a mask from flag names.

        Names are case-insensitive and may omit the ``_events`` suffix, so
        ``"retry"``, ``"RETRY_EVENTS"`` and ``"retry_events"`` are equal.
        ``"*"`` is an alias for ``"all"``.

        Args:
            names: A comma-separated string or an iterable of names

        Returns:
            Combined Details mask

        Raises:
            ConfigurationError: If a name does not match any flag
        """
        if isinstance(names, str):
            names = names.split(",")

        mask = cls.NONE
        for raw in names:
            name = raw.strip().upper()
            if not name:
                continue
            if name == "*":
                name = "ALL"
            member = cls.__members__.get(name)
            if member is None:
                member = cls.__members__.get(f"{name}_EVENTS")
            if member is None:
                raise ConfigurationError(f"Unknown trace details name: {raw!r}")
            mask |= member
        return mask


def enabled(mask: Details, kind: Details) -> bool:
    """Return True if every bit of ``kind`` is set in ``mask``."""
    return kind != 0 and (mask & kind) == kind
