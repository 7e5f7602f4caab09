"""Shared fixtures: an in-memory SDK provider and a call-recording adapter."""

from __future__ import annotations

import pytest
from opentelemetry.sdk.trace import SpanLimits, TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from querytrace.attributes import status_for
from querytrace.tracer import TracerAdapter


class RecordingAdapter(TracerAdapter):
    """Adapter that logs every open/annotate/close call before delegating."""

    def __init__(self, tracer):
        super().__init__(tracer)
        self.log = []

    def open(self, parent_context, name, attributes=None):
        self.log.append(("open", name, dict(attributes or {})))
        return super().open(parent_context, name, attributes)

    def annotate(self, span, name, attributes=None):
        self.log.append(("annotate", dict(attributes or {})))
        super().annotate(span, name, attributes)

    def close(self, span, error, attributes=None):
        status = status_for(error)
        self.log.append(("close", status.status_code, status.description))
        super().close(span, error, attributes)

    def calls(self):
        return [entry[0] for entry in self.log]


@pytest.fixture()
def exporter():
    return InMemorySpanExporter()


@pytest.fixture()
def provider(exporter):
    # Room for the 1000-part streaming chains.
    provider = TracerProvider(span_limits=SpanLimits(max_events=2048))
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    yield provider
    provider.shutdown()


@pytest.fixture()
def adapter(provider):
    return RecordingAdapter(provider.get_tracer("querytrace-tests"))
