"""
Tracer adapter around an OpenTelemetry tracer.

The adapter is constructed explicitly and handed to every handler-table
builder; nothing here reads or installs a process-wide tracer provider.
"""

import logging
from typing import Any, Optional

from opentelemetry import context as otel_context
from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.trace import Span, SpanKind, Tracer, TracerProvider
from opentelemetry.util.types import Attributes

from querytrace.attributes import error_attributes, status_for
from querytrace.diagnostics import Diagnostics

logger = logging.getLogger(__name__)

INSTRUMENTATION_NAME = "querytrace"


class TracerAdapter:
    """
    Opens, annotates and closes spans on behalf of the bridge.

    Spans are started as CLIENT spans. When a start record carries no
    context, the caller's current OpenTelemetry context is used as parent,
    so an operation started inside an active span becomes its child.
    """

    def __init__(
        self,
        tracer: Tracer,
        diagnostics: Optional[Diagnostics] = None,
        span_kind: SpanKind = SpanKind.CLIENT,
    ):
        """
        Initialize the adapter.

        Args:
            tracer: OpenTelemetry tracer spans are created with
            diagnostics: Counter sink shared by chains built from this adapter
            span_kind: Kind assigned to every opened span
        """
        self._tracer = tracer
        self._span_kind = span_kind
        self._warned = False
        self.diagnostics = diagnostics or Diagnostics()

    @classmethod
    def from_provider(
        cls,
        provider: TracerProvider,
        name: str = INSTRUMENTATION_NAME,
        version: Optional[str] = None,
    ) -> "TracerAdapter":
        """Create an adapter from an explicitly constructed provider."""
        if version is None:
            from querytrace import __version__ as version
        return cls(provider.get_tracer(name, version))

    @classmethod
    def noop(cls) -> "TracerAdapter":
        """Adapter whose spans are never recorded."""
        return cls(trace.NoOpTracer())

    def open(
        self,
        parent_context: Optional[Context],
        name: str,
        attributes: Attributes = None,
    ) -> tuple[Optional[Span], Optional[Context]]:
        """
        Start a span.

        Args:
            parent_context: Context carried by the start record, or None
            name: Span name
            attributes: Attributes known at start time

        Returns:
            The span and a child context carrying it. If the tracer fails,
            ``(None, parent_context)``.
        """
        ctx = parent_context if parent_context is not None else otel_context.get_current()
        span = None
        try:
            span = self._tracer.start_span(
                name,
                context=ctx,
                kind=self._span_kind,
                attributes=attributes,
            )
            return span, trace.set_span_in_context(span, ctx)
        except Exception as e:
            self.diagnostics.record_open_failure()
            if not self._warned:
                self._warned = True
                logger.warning(f"Tracer failed to open span {name!r}, tracing degraded: {e}")
            else:
                logger.debug(f"Tracer failed to open span {name!r}: {e}")
            if span is not None:
                self._discard(span)
            return None, parent_context

    def _discard(self, span: Span) -> None:
        try:
            span.end()
        except Exception as e:
            logger.debug(f"Ending a half-opened span failed: {type(e).__name__}")

    def annotate(self, span: Span, name: str, attributes: Attributes = None) -> None:
        """Record a non-terminal event on an open span."""
        span.add_event(name, attributes=attributes)

    def close(
        self,
        span: Span,
        error: Optional[BaseException],
        attributes: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Finish a span with status derived from ``error``.

        Args:
            span: Span returned by open()
            error: Terminal error of the traced operation, or None
            attributes: Extra terminal attributes (counters, plan)
        """
        final = error_attributes(error)
        if attributes:
            final.update(attributes)
        span.set_attributes(final)
        span.set_status(status_for(error))
        span.end()
