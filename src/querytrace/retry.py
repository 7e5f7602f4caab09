"""
Retry loop tracing.

The retry loop is a streaming chain: every finished attempt is an
intermediate record and the loop's final outcome closes the span.
"""

from typing import Any, Optional

from querytrace.attributes import ATTEMPTS, IDEMPOTENT, counter
from querytrace.bridge import ChainSpec, build_handler
from querytrace.details import Details
from querytrace.trace import Retry, RetryLoopDoneInfo, RetryLoopIntermediateInfo, RetryLoopStartInfo
from querytrace.tracer import TracerAdapter


def _retry_start(info: RetryLoopStartInfo) -> dict[str, Any]:
    return {IDEMPOTENT: bool(info.idempotent)}


def _retry_finish(info: RetryLoopDoneInfo) -> tuple[Optional[BaseException], dict[str, Any]]:
    return info.error, counter(ATTEMPTS, info.attempts)


RETRY_LOOP = ChainSpec(
    name="ydb_retry",
    kind=Details.RETRY_EVENTS,
    done_type=RetryLoopDoneInfo,
    intermediate_type=RetryLoopIntermediateInfo,
    start_attributes=_retry_start,
    finish=_retry_finish,
)


def retry(adapter: TracerAdapter, details: Details) -> Retry:
    """Build the retry handler table; a no-op unless RETRY_EVENTS is set."""
    return Retry(on_retry=build_handler(adapter, details, RETRY_LOOP))
