"""
querytrace - OpenTelemetry tracing for database driver lifecycle events.

The driver reports each operation as a chain of start, intermediate and done
records. This package builds the handler tables the driver calls into and
turns every chain into one OpenTelemetry span.
"""

__version__ = "0.1.0"

from dataclasses import dataclass

from .details import Details, enabled
from .diagnostics import Diagnostics, DiagnosticsSnapshot
from .errors import ConfigurationError, InstrumentationFault, QueryTraceError
from .tracer import TracerAdapter
from .trace import Retry, Scripting
from .bridge import ChainSpec, ChainState, SpanChain
from .scripting import scripting
from .retry import retry
from .config import TracingSettings, TracingSetup, setup_tracing


@dataclass
class DriverTraces:
    """Handler tables for every traced operation family."""
    scripting: Scripting
    retry: Retry


def build_traces(adapter: TracerAdapter, details: Details = Details.ALL) -> DriverTraces:
    """Build every handler table from one adapter and details mask."""
    return DriverTraces(
        scripting=scripting(adapter, details),
        retry=retry(adapter, details),
    )


__all__ = [
    # Filter gate
    "Details",
    "enabled",
    # Bridge
    "ChainSpec",
    "ChainState",
    "SpanChain",
    "DriverTraces",
    "build_traces",
    "scripting",
    "retry",
    "Scripting",
    "Retry",
    # Tracer adapter
    "TracerAdapter",
    # Diagnostics
    "Diagnostics",
    "DiagnosticsSnapshot",
    # Configuration
    "TracingSettings",
    "TracingSetup",
    "setup_tracing",
    # Errors
    "QueryTraceError",
    "ConfigurationError",
    "InstrumentationFault",
]
