"""
Diagnostic counters for the bridge.

Faults and out-of-order calls are never raised to the driver; they are
counted here so operators and tests can observe them.
"""

import threading
from dataclasses import dataclass


@dataclass(frozen=True)
class DiagnosticsSnapshot:
    """Point-in-time copy of the counters."""
    faults: int = 0
    late_calls: int = 0
    open_failures: int = 0


class Diagnostics:
    """Thread-safe counters shared by every chain built from one adapter."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._faults = 0
        self._late_calls = 0
        self._open_failures = 0

    def record_fault(self) -> None:
        """Count an instrumentation fault recovered inside a handler."""
        with self._lock:
            self._faults += 1

    def record_late_call(self) -> None:
        """Count a continuation call that arrived after its chain closed."""
        with self._lock:
            self._late_calls += 1

    def record_open_failure(self) -> None:
        """Count a span that could not be opened."""
        with self._lock:
            self._open_failures += 1

    def snapshot(self) -> DiagnosticsSnapshot:
        with self._lock:
            return DiagnosticsSnapshot(
                faults=self._faults,
                late_calls=self._late_calls,
                open_failures=self._open_failures,
            )

    def reset(self) -> None:
        with self._lock:
            self._faults = 0
            self._late_calls = 0
            self._open_failures = 0
