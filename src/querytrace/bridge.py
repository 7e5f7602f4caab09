"""
Span lifecycle bridge.

A driver operation is reported as a chain of records: a start record, zero
or more intermediate records (streaming kinds only) and a done record. The
start handler opens a span and returns a SpanChain; the chain is the
continuation the driver calls with every later record of the operation.

Span lifetime follows record arrival rather than lexical scope, so the chain
owns its span explicitly and moves through OPENED -> STREAMING -> CLOSED.
Once CLOSED, further calls are ignored and counted as late calls.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from opentelemetry.context import Context
from opentelemetry.trace import Span

from querytrace import safe
from querytrace.attributes import IDEMPOTENT, INTERMEDIATE_EVENT, intermediate_attributes
from querytrace.details import Details, enabled
from querytrace.errors import InstrumentationFault
from querytrace.trace import Continuation, StartHandler, noop_continuation, noop_start
from querytrace.tracer import TracerAdapter

logger = logging.getLogger(__name__)

Finish = Callable[[Any], tuple[Optional[BaseException], dict[str, Any]]]


def finish_with_error(info: Any) -> tuple[Optional[BaseException], dict[str, Any]]:
    """Default terminal mapping: the record's own error, no extra attributes."""
    return info.error, {}


def no_start_attributes(info: Any) -> dict[str, Any]:
    return {}


@dataclass(frozen=True)
class ChainSpec:
    """
    Static description of one traced operation kind.

    Attributes:
        name: Span name
        kind: Details flag that enables this operation
        done_type: Record type that closes the span
        intermediate_type: Record type annotating the span (streaming kinds)
        start_attributes: Maps the start record to span attributes
        finish: Maps the done record to (error, terminal attributes)
    """
    name: str
    kind: Details
    done_type: type
    intermediate_type: Optional[type] = None
    start_attributes: Callable[[Any], dict[str, Any]] = field(default=no_start_attributes)
    finish: Finish = field(default=finish_with_error)

    @property
    def streaming(self) -> bool:
        return self.intermediate_type is not None


class ChainState(str, Enum):
    """Running state of a span chain."""

    OPENED = "OPENED"
    STREAMING = "STREAMING"
    CLOSED = "CLOSED"


class SpanChain:
    """
    Continuation carrying one open span.

    Calling the chain with an intermediate record annotates the span and
    returns the chain itself; calling it with the done record closes the span
    and returns None. Records of any other type are faults and are ignored.
    """

    def __init__(
        self,
        adapter: TracerAdapter,
        spec: ChainSpec,
        span: Span,
        parent_context: Optional[Context],
        context: Optional[Context],
        attributes: dict[str, Any],
    ):
        self.spec = spec
        self.span = span
        self.parent_context = parent_context
        self.context = context
        self.attributes = attributes
        self.start_time_ns: Optional[int] = getattr(span, "start_time", None)
        self.state = ChainState.OPENED
        self._adapter = adapter
        self._lock = threading.Lock()

    @property
    def kind(self) -> Details:
        return self.spec.kind

    @property
    def idempotent(self) -> Optional[bool]:
        return self.attributes.get(IDEMPOTENT)

    @property
    def closed(self) -> bool:
        return self.state is ChainState.CLOSED

    def __call__(self, info: Any) -> Optional[Continuation]:
        spec = self.spec
        if spec.intermediate_type is not None and isinstance(info, spec.intermediate_type):
            self._intermediate(info)
            return self
        if isinstance(info, spec.done_type):
            self._done(info)
            return None

        self._fault(
            InstrumentationFault(f"Unexpected record {type(info).__name__} for {spec.name}")
        )
        return self

    def _intermediate(self, info: Any) -> None:
        with self._lock:
            if self.state is ChainState.CLOSED:
                self._late(info)
                return
            self.state = ChainState.STREAMING
        try:
            self._adapter.annotate(
                self.span,
                INTERMEDIATE_EVENT,
                intermediate_attributes(info.error),
            )
        except Exception as e:
            self._fault(e)

    def _done(self, info: Any) -> None:
        with self._lock:
            if self.state is ChainState.CLOSED:
                self._late(info)
                return
            self.state = ChainState.CLOSED

        try:
            error, attributes = self.spec.finish(info)
        except Exception as e:
            self._fault(e)
            error, attributes = getattr(info, "error", None), {}

        try:
            self._adapter.close(self.span, error, attributes)
        except Exception as e:
            self._fault(e)
            self._end_quietly()

    def _end_quietly(self) -> None:
        try:
            if self.span.is_recording():
                self.span.end()
        except Exception as e:
            self._fault(e)

    def _late(self, info: Any) -> None:
        self._adapter.diagnostics.record_late_call()
        logger.debug(f"Ignoring {type(info).__name__} for closed span {self.spec.name}")

    def _fault(self, error: BaseException) -> None:
        record_fault(self._adapter, self.spec, error)

    def __repr__(self) -> str:
        return f"SpanChain(name={self.spec.name!r}, state={self.state.value})"


def record_fault(
    adapter: TracerAdapter,
    spec: ChainSpec,
    error: BaseException,
) -> InstrumentationFault:
    """Count an instrumentation fault and log it; returns the wrapped fault."""
    if not isinstance(error, InstrumentationFault):
        error = InstrumentationFault(f"Instrumentation fault in {spec.name}", cause=error)
    adapter.diagnostics.record_fault()
    if error.cause is None:
        logger.debug(safe.error_text(error))
    else:
        logger.debug(f"{error}: {safe.error_type(error.cause)}: {safe.error_text(error.cause)}")
    return error


def start_chain(adapter: TracerAdapter, spec: ChainSpec, info: Any) -> Continuation:
    """
    Open a span for a start record and return its continuation.

    Never raises; if the span cannot be opened the returned continuation is
    inert.
    """
    parent_context = getattr(info, "context", None)
    try:
        attributes = spec.start_attributes(info)
    except Exception as e:
        record_fault(adapter, spec, e)
        attributes = {}

    try:
        span, context = adapter.open(parent_context, spec.name, attributes)
    except Exception as e:
        record_fault(adapter, spec, e)
        adapter.diagnostics.record_open_failure()
        return noop_continuation
    if span is None:
        return noop_continuation
    return SpanChain(adapter, spec, span, parent_context, context, attributes)


def build_handler(adapter: TracerAdapter, details: Details, spec: ChainSpec) -> StartHandler:
    """
    Start handler for one operation kind.

    The details mask is checked once here; disabled kinds get the shared
    no-op handler.
    """
    if not enabled(details, spec.kind):
        return noop_start

    def on_start(info: Any) -> Continuation:
        return start_chain(adapter, spec, info)

    on_start.__name__ = f"on_{spec.name}"
    return on_start
