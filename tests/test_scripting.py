import pytest
from opentelemetry.trace import StatusCode

from querytrace import ChainState, Details, SpanChain, TracerAdapter, safe, scripting
from querytrace.trace import (
    RetryLoopIntermediateInfo,
    ScriptingCloseDoneInfo,
    ScriptingCloseStartInfo,
    ScriptingExecuteDoneInfo,
    ScriptingExecuteStartInfo,
    ScriptingExplainDoneInfo,
    ScriptingExplainStartInfo,
    ScriptingStreamExecuteDoneInfo,
    ScriptingStreamExecuteIntermediateInfo,
    ScriptingStreamExecuteStartInfo,
    noop_continuation,
)


class Unprintable:
    def __str__(self):
        raise RuntimeError("cannot render")


class Result:
    def __init__(self, error=None):
        self._error = error

    def err(self):
        return self._error


class ExplodingCloseAdapter(TracerAdapter):
    def close(self, span, error, attributes=None):
        raise RuntimeError("exporter exploded")


@pytest.fixture()
def traces(adapter):
    return scripting(adapter, Details.SCRIPTING_EVENTS)


def test_execute_success(traces, adapter, exporter):
    done = traces.on_execute(ScriptingExecuteStartInfo(query="q1"))
    assert done(ScriptingExecuteDoneInfo(result=Result())) is None

    assert adapter.log == [
        ("open", "ydb_scripting_execute", {"query": "q1", "params": ""}),
        ("close", StatusCode.OK, None),
    ]
    (span,) = exporter.get_finished_spans()
    assert span.name == "ydb_scripting_execute"
    assert span.attributes["query"] == "q1"
    assert span.status.status_code == StatusCode.OK


def test_execute_records_driver_error(traces, exporter):
    done = traces.on_execute(ScriptingExecuteStartInfo(query="q1", parameters={"$id": 1}))
    done(ScriptingExecuteDoneInfo(error=ConnectionError("transport lost")))

    (span,) = exporter.get_finished_spans()
    assert span.attributes["params"] == "{'$id': 1}"
    assert span.attributes["error"] is True
    assert span.attributes["error.message"] == "transport lost"
    assert span.status.status_code == StatusCode.ERROR
    assert span.status.description == "transport lost"


def test_execute_records_deferred_result_error(traces, exporter):
    done = traces.on_execute(ScriptingExecuteStartInfo(query="q1"))
    done(ScriptingExecuteDoneInfo(result=Result(ValueError("bad result set"))))

    (span,) = exporter.get_finished_spans()
    assert span.status.status_code == StatusCode.ERROR
    assert span.status.description == "bad result set"


def test_execute_with_unprintable_parameters(traces, exporter):
    done = traces.on_execute(ScriptingExecuteStartInfo(query="q1", parameters=Unprintable()))
    done(ScriptingExecuteDoneInfo())

    (span,) = exporter.get_finished_spans()
    assert span.attributes["params"] == safe.UNPRINTABLE
    assert span.status.status_code == StatusCode.OK


def test_stream_execute_annotates_then_closes(traces, adapter, exporter):
    chain = traces.on_stream_execute(ScriptingStreamExecuteStartInfo(query="q2"))
    chain = chain(ScriptingStreamExecuteIntermediateInfo())
    chain = chain(ScriptingStreamExecuteIntermediateInfo(error=RuntimeError("x")))
    assert chain(ScriptingStreamExecuteDoneInfo(error=RuntimeError("y"))) is None

    assert adapter.log == [
        ("open", "ydb_scripting_stream_execute", {"query": "q2", "params": ""}),
        ("annotate", {"error": False}),
        ("annotate", {"error": True, "error.message": "x"}),
        ("close", StatusCode.ERROR, "y"),
    ]
    (span,) = exporter.get_finished_spans()
    assert len(span.events) == 2
    assert span.events[1].attributes["error.message"] == "x"
    assert span.status.description == "y"


def test_stream_intermediate_never_closes(traces, exporter):
    chain = traces.on_stream_execute(ScriptingStreamExecuteStartInfo(query="q2"))
    for _ in range(5):
        chain = chain(ScriptingStreamExecuteIntermediateInfo())

    assert exporter.get_finished_spans() == ()
    assert isinstance(chain, SpanChain)
    assert chain.state is ChainState.STREAMING
    assert chain.span.is_recording()


def test_explain_records_plan(traces, exporter):
    done = traces.on_explain(ScriptingExplainStartInfo(query="SELECT 1"))
    done(ScriptingExplainDoneInfo(plan="{\"Plan\": {}}"))

    (span,) = exporter.get_finished_spans()
    assert span.name == "ydb_scripting_explain"
    assert span.attributes["query"] == "SELECT 1"
    assert "params" not in span.attributes
    assert span.attributes["plan"] == "{\"Plan\": {}}"


def test_close_span(traces, exporter):
    done = traces.on_close(ScriptingCloseStartInfo())
    done(ScriptingCloseDoneInfo(error=TimeoutError("close timed out")))

    (span,) = exporter.get_finished_spans()
    assert span.name == "ydb_scripting_close"
    assert span.status.description == "close timed out"


def test_disabled_scripting_is_inert(adapter, exporter):
    traces = scripting(adapter, Details.RETRY_EVENTS)

    done = traces.on_execute(ScriptingExecuteStartInfo(query="q1"))
    done(ScriptingExecuteDoneInfo(error=RuntimeError("y")))
    chain = traces.on_stream_execute(ScriptingStreamExecuteStartInfo(query="q2"))
    chain = chain(ScriptingStreamExecuteIntermediateInfo())
    chain = chain(ScriptingStreamExecuteDoneInfo())
    chain(ScriptingStreamExecuteDoneInfo())

    assert done is noop_continuation
    assert chain is noop_continuation
    assert adapter.log == []
    assert exporter.get_finished_spans() == ()


def test_repeated_terminal_closes_once(traces, adapter, exporter):
    done = traces.on_execute(ScriptingExecuteStartInfo(query="q1"))
    done(ScriptingExecuteDoneInfo())
    done(ScriptingExecuteDoneInfo(error=RuntimeError("late")))

    assert adapter.calls() == ["open", "close"]
    assert len(exporter.get_finished_spans()) == 1
    assert exporter.get_finished_spans()[0].status.status_code == StatusCode.OK
    assert adapter.diagnostics.snapshot().late_calls == 1


def test_intermediate_after_close_is_ignored(traces, adapter):
    chain = traces.on_stream_execute(ScriptingStreamExecuteStartInfo(query="q2"))
    chain(ScriptingStreamExecuteDoneInfo())

    assert chain(ScriptingStreamExecuteIntermediateInfo()) is chain
    assert adapter.calls() == ["open", "close"]
    assert adapter.diagnostics.snapshot().late_calls == 1


def test_unexpected_record_type_is_a_fault(traces, adapter, exporter):
    done = traces.on_execute(ScriptingExecuteStartInfo(query="q1"))

    assert done(RetryLoopIntermediateInfo()) is done
    assert adapter.diagnostics.snapshot().faults == 1
    assert exporter.get_finished_spans() == ()

    done(ScriptingExecuteDoneInfo())
    assert len(exporter.get_finished_spans()) == 1


def test_tracer_fault_at_close_does_not_propagate(provider, exporter):
    adapter = ExplodingCloseAdapter(provider.get_tracer("test"))
    traces = scripting(adapter, Details.ALL)

    done = traces.on_execute(ScriptingExecuteStartInfo(query="q1"))
    done(ScriptingExecuteDoneInfo())

    assert adapter.diagnostics.snapshot().faults == 1
    (span,) = exporter.get_finished_spans()
    assert span.name == "ydb_scripting_execute"
