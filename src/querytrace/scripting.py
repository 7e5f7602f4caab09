"""
Scripting client tracing.

Execute, explain and close are simple chains (start -> done); stream execute
is a streaming chain (start -> intermediate* -> done).
"""

from typing import Any, Optional

from querytrace import safe
from querytrace.attributes import PLAN, query_attributes
from querytrace.bridge import ChainSpec, build_handler
from querytrace.details import Details
from querytrace.trace import (
    Scripting,
    ScriptingCloseDoneInfo,
    ScriptingExecuteDoneInfo,
    ScriptingExecuteStartInfo,
    ScriptingExplainDoneInfo,
    ScriptingExplainStartInfo,
    ScriptingStreamExecuteDoneInfo,
    ScriptingStreamExecuteIntermediateInfo,
    ScriptingStreamExecuteStartInfo,
)
from querytrace.tracer import TracerAdapter


def _execute_start(info: ScriptingExecuteStartInfo) -> dict[str, Any]:
    return query_attributes(info.query, info.parameters)


def _execute_finish(info: ScriptingExecuteDoneInfo) -> tuple[Optional[BaseException], dict[str, Any]]:
    # A successful call may still hand back a result set holding a deferred error.
    if info.error is None:
        return safe.result_error(info.result), {}
    return info.error, {}


def _stream_execute_start(info: ScriptingStreamExecuteStartInfo) -> dict[str, Any]:
    return query_attributes(info.query, info.parameters)


def _explain_start(info: ScriptingExplainStartInfo) -> dict[str, Any]:
    return query_attributes(info.query, with_params=False)


def _explain_finish(info: ScriptingExplainDoneInfo) -> tuple[Optional[BaseException], dict[str, Any]]:
    if info.error is None and info.plan is not None:
        return None, {PLAN: safe.stringer(info.plan)}
    return info.error, {}


EXECUTE = ChainSpec(
    name="ydb_scripting_execute",
    kind=Details.SCRIPTING_EVENTS,
    done_type=ScriptingExecuteDoneInfo,
    start_attributes=_execute_start,
    finish=_execute_finish,
)

STREAM_EXECUTE = ChainSpec(
    name="ydb_scripting_stream_execute",
    kind=Details.SCRIPTING_EVENTS,
    done_type=ScriptingStreamExecuteDoneInfo,
    intermediate_type=ScriptingStreamExecuteIntermediateInfo,
    start_attributes=_stream_execute_start,
)

EXPLAIN = ChainSpec(
    name="ydb_scripting_explain",
    kind=Details.SCRIPTING_EVENTS,
    done_type=ScriptingExplainDoneInfo,
    start_attributes=_explain_start,
    finish=_explain_finish,
)

CLOSE = ChainSpec(
    name="ydb_scripting_close",
    kind=Details.SCRIPTING_EVENTS,
    done_type=ScriptingCloseDoneInfo,
)


def scripting(adapter: TracerAdapter, details: Details) -> Scripting:
    """
    Build the scripting handler table.

    Args:
        adapter: Tracer adapter spans are opened through
        details: Mask of enabled operation kinds

    Returns:
        Scripting table; every handler is a no-op unless
        ``Details.SCRIPTING_EVENTS`` is set
    """
    return Scripting(
        on_execute=build_handler(adapter, details, EXECUTE),
        on_stream_execute=build_handler(adapter, details, STREAM_EXECUTE),
        on_explain=build_handler(adapter, details, EXPLAIN),
        on_close=build_handler(adapter, details, CLOSE),
    )
