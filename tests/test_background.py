"""Tests for background task utilities."""

from __future__ import annotations

import pytest
import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, get_contextvars
from structlog.testing import capture_logs

from neynar_webhook.background import run_async


def test_run_async_carries_request_trace_id():
    clear_contextvars()
    bind_contextvars(trace_id="trace-123")
    captured: dict[str, str] = {}

    run_async(lambda: captured.update(get_contextvars())).result(timeout=1)

    assert captured.get("trace_id") == "trace-123"
    clear_contextvars()


def test_explicit_trace_id_seeds_worker_context_only():
    clear_contextvars()
    captured: dict[str, str] = {}

    run_async(lambda: captured.update(get_contextvars()), trace_id="trace-456").result(timeout=1)

    assert captured.get("trace_id") == "trace-456"
    assert "trace_id" not in get_contextvars()
    clear_contextvars()


def test_worker_logs_include_trace_id():
    clear_contextvars()

    with capture_logs(processors=[structlog.contextvars.merge_contextvars]) as logs:
        run_async(
            lambda cast_hash: structlog.get_logger().info("reaction_published", cast_hash=cast_hash),
            "0xabc",
            trace_id="trace-789",
        ).result(timeout=1)

    assert logs[0]["event"] == "reaction_published"
    assert logs[0]["cast_hash"] == "0xabc"
    assert logs[0]["trace_id"] == "trace-789"
    clear_contextvars()


def test_worker_exceptions_surface_through_the_future():
    def boom():
        raise RuntimeError("failed")

    with pytest.raises(RuntimeError):
        run_async(boom).result(timeout=1)


def test_failed_task_is_logged_under_the_request_trace_id():
    clear_contextvars()

    def publish_like(cast_hash):
        raise RuntimeError(f"could not like {cast_hash}")

    with capture_logs(processors=[structlog.contextvars.merge_contextvars]) as logs:
        future = run_async(publish_like, "0xabc", trace_id="trace-fail")
        assert isinstance(future.exception(timeout=1), RuntimeError)

    assert logs[0]["event"] == "background_task_failed"
    assert logs[0]["task"].endswith("publish_like")
    assert logs[0]["trace_id"] == "trace-fail"
    assert logs[0]["log_level"] == "error"
    clear_contextvars()
