"""Shared thread pool used to run workflow steps and their continuations."""

from contextvars import copy_context
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from structlog.contextvars import bind_contextvars, get_contextvars


WORKER_COUNT = 8

_executor = ThreadPoolExecutor(max_workers=WORKER_COUNT, thread_name_prefix="workflow")


def run_async(
    func: Callable[..., Any],
    /,
    *args: Any,
    trace_id: str | None = None,
    **kwargs: Any,
) -> Future:
    """Submit *func* to the shared thread pool and return a Future.

    The caller's structlog context vars are copied into the worker so that a
    workflow resumed from a webhook delivery keeps logging under the trace id
    of the delivery that woke it.
    """

    context = copy_context()

    if trace_id is not None and context.run(lambda: get_contextvars().get("trace_id")) != trace_id:
        context.run(lambda: bind_contextvars(trace_id=trace_id))

    def runner() -> Any:
        return context.run(func, *args, **kwargs)

    return _executor.submit(runner)


def shutdown_background(*, wait: bool = False) -> None:
    """Stop accepting new background work."""

    _executor.shutdown(wait=wait, cancel_futures=True)
