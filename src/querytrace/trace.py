"""
Driver event taxonomy.

The driver reports each traced operation as a sequence of immutable records:
one start record, zero or more intermediate records (streaming kinds only)
and one done record. Handler tables collect the callbacks the driver invokes
with those records; every handler defaults to a no-op chain.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from opentelemetry.context import Context

# A continuation receives the next record of its chain and returns the
# handler for the record after it (or None once the chain is closed).
Continuation = Callable[[Any], Optional["Continuation"]]
StartHandler = Callable[[Any], Continuation]


def noop_continuation(info: Any) -> Continuation:
    """Continuation that ignores every record."""
    return noop_continuation


def noop_start(info: Any) -> Continuation:
    """Start handler used for disabled operation kinds."""
    return noop_continuation


# =============================================================================
# Scripting
# =============================================================================

@dataclass(frozen=True)
class ScriptingExecuteStartInfo:
    """Start of a scripting query execution."""
    context: Optional[Context] = None
    query: str = ""
    parameters: Any = None


@dataclass(frozen=True)
class ScriptingExecuteDoneInfo:
    """End of a scripting query execution."""
    result: Any = None
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class ScriptingStreamExecuteStartInfo:
    """Start of a streaming scripting execution."""
    context: Optional[Context] = None
    query: str = ""
    parameters: Any = None


@dataclass(frozen=True)
class ScriptingStreamExecuteIntermediateInfo:
    """One received part of a streaming scripting execution."""
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class ScriptingStreamExecuteDoneInfo:
    """End of a streaming scripting execution."""
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class ScriptingExplainStartInfo:
    """Start of a scripting explain call."""
    context: Optional[Context] = None
    query: str = ""


@dataclass(frozen=True)
class ScriptingExplainDoneInfo:
    """End of a scripting explain call."""
    plan: Optional[str] = None
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class ScriptingCloseStartInfo:
    """Start of closing the scripting client."""
    context: Optional[Context] = None


@dataclass(frozen=True)
class ScriptingCloseDoneInfo:
    """End of closing the scripting client."""
    error: Optional[BaseException] = None


@dataclass
class Scripting:
    """Scripting client handler table."""
    on_execute: StartHandler = field(default=noop_start)
    on_stream_execute: StartHandler = field(default=noop_start)
    on_explain: StartHandler = field(default=noop_start)
    on_close: StartHandler = field(default=noop_start)


# =============================================================================
# Retry loop
# =============================================================================

@dataclass(frozen=True)
class RetryLoopStartInfo:
    """Start of a driver retry loop."""
    context: Optional[Context] = None
    idempotent: bool = False


@dataclass(frozen=True)
class RetryLoopIntermediateInfo:
    """One finished attempt of a retry loop."""
    error: Optional[BaseException] = None


@dataclass(frozen=True)
class RetryLoopDoneInfo:
    """End of a retry loop."""
    attempts: int = 0
    error: Optional[BaseException] = None


@dataclass
class Retry:
    """Retry loop handler table."""
    on_retry: StartHandler = field(default=noop_start)
