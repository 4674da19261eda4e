"""Best-effort work that must never delay or fail the webhook response."""

from contextvars import copy_context
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

import structlog
from structlog.contextvars import bind_contextvars


_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="webhook-background")


def _task_name(func: Callable[..., Any]) -> str:
    return getattr(func, "__qualname__", None) or repr(func)


def run_async(
    func: Callable[..., Any],
    /,
    *args: Any,
    trace_id: str | None = None,
    **kwargs: Any,
) -> Future:
    """Run *func* on the shared pool with the caller's structlog context.

    When *trace_id* is given it is bound in the worker's copy of the context
    only. A task that raises is logged as ``background_task_failed`` under the
    same trace id; the exception stays available on the returned Future.
    """

    context = copy_context()
    if trace_id is not None:
        context.run(bind_contextvars, trace_id=trace_id)

    name = _task_name(func)

    def runner() -> Any:
        try:
            return func(*args, **kwargs)
        except Exception:
            structlog.get_logger().error("background_task_failed", task=name, exc_info=True)
            raise

    return _executor.submit(context.run, runner)
