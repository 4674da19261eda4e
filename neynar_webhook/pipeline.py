"""Request-handling state machine for inbound Neynar webhooks.

A request moves strictly forward through
``method -> body -> rate check -> signature -> parse -> classify -> respond``
and any failure short-circuits into a JSON rejection. Nothing shared is
mutated and nothing outbound is called until the signature has been accepted.
"""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass, field
import time
from typing import Any, Callable, Mapping, Protocol
from uuid import uuid4

import structlog
from structlog.contextvars import bind_contextvars, unbind_contextvars

from .background import run_async
from .caches import DeduplicationCache, ResponseCache
from .errors import (
    AuthError,
    DownstreamError,
    MethodNotAllowedError,
    RateLimitError,
    WebhookError,
)
from .events import BotIdentity, CastEvent, Ignored, classify_event, parse_event, strip_mentions
from .rate_limit import SlidingWindowRateLimiter
from .security import NEYNAR_SIGNATURE_HEADER, verify_signature

ALLOWED_METHOD = "POST"
REACTION_KIND = "like"


class Publisher(Protocol):
    def publish_reply(self, parent_hash: str, text: str) -> Mapping[str, str]: ...

    def publish_reaction(self, target_hash: str, kind: str) -> None: ...


@dataclass(frozen=True)
class IncomingRequest:
    """A captured request; header names are lower-cased."""

    method: str
    headers: Mapping[str, str]
    body: bytes

    @classmethod
    def capture(cls, method: str, headers: Mapping[str, str], body: bytes) -> "IncomingRequest":
        return cls(
            method=method.upper(),
            headers={str(name).lower(): value for name, value in headers.items()},
            body=bytes(body),
        )

    @property
    def signature(self) -> str | None:
        return self.headers.get(NEYNAR_SIGNATURE_HEADER)

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")


@dataclass(frozen=True)
class WebhookResult:
    status_code: int
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)


class WebhookProcessor:
    """Authenticate, filter and answer Neynar cast events."""

    def __init__(
        self,
        *,
        secret: str,
        identity: BotIdentity,
        rate_limiter: SlidingWindowRateLimiter,
        dedup_cache: DeduplicationCache,
        response_cache: ResponseCache,
        generate_reply: Callable[[str], str],
        publisher: Publisher,
        expose_error_detail: bool = False,
        background: Callable[..., Future | None] = run_async,
    ) -> None:
        self._secret = secret.encode("utf-8")
        self._identity = identity
        self._rate_limiter = rate_limiter
        self._dedup_cache = dedup_cache
        self._response_cache = response_cache
        self._generate_reply = generate_reply
        self._publisher = publisher
        self._expose_error_detail = expose_error_detail
        self._background = background

    def handle(
        self,
        method: str,
        headers: Mapping[str, str],
        read_body: Callable[[], bytes],
        *,
        trace_id: str | None = None,
    ) -> WebhookResult:
        """Run one request through the pipeline and return the HTTP outcome."""

        trace_id = trace_id or str(uuid4())
        started = time.perf_counter()
        bind_contextvars(trace_id=trace_id)
        log = structlog.get_logger().bind(trace_id=trace_id)
        try:
            try:
                result = self._process(method, headers, read_body, trace_id=trace_id, log=log)
            except WebhookError as exc:
                result = self._reject(exc, trace_id=trace_id, log=log)

            log.info(
                "webhook_completed",
                method=method.upper(),
                status_code=result.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            return result
        finally:
            unbind_contextvars("trace_id")

    def _process(self, method, headers, read_body, *, trace_id: str, log) -> WebhookResult:
        if method.upper() != ALLOWED_METHOD:
            raise MethodNotAllowedError(f"{method} is not supported")

        request = IncomingRequest.capture(method, headers, read_body())
        log.info("webhook_received", body_bytes=len(request.body), content_type=request.content_type)

        # Only a capacity check here; the slot is taken once the sender is authenticated.
        if not self._rate_limiter.has_capacity():
            raise RateLimitError("request window is full")

        if not request.signature:
            raise AuthError("signature header missing")
        if not verify_signature(self._secret, request.body, request.signature):
            raise AuthError("signature mismatch")

        if not self._rate_limiter.try_acquire():
            raise RateLimitError("request window is full")

        event = parse_event(request.body)
        log = log.bind(event_type=event.kind, cast_hash=event.id or None)

        decision = classify_event(event, identity=self._identity, dedup_cache=self._dedup_cache)
        if isinstance(decision, Ignored):
            log.info("webhook_ignored", reason=decision.reason)
            return WebhookResult(200, {"status": "ignored", "reason": decision.reason})

        return self._respond(decision.event, trace_id=trace_id, log=log)

    def _respond(self, event: CastEvent, *, trace_id: str, log) -> WebhookResult:
        self._background(self._react, event.id, trace_id=trace_id)

        prompt = strip_mentions(event.text)
        reply = self._response_cache.get(prompt)
        if reply is None:
            reply = self._call_downstream("reply generation", self._generate_reply, prompt)
            self._response_cache.set(prompt, reply)
            log.info("reply_generated", cached=False)
        else:
            log.info("reply_generated", cached=True)

        author = event.author.username
        reply_text = f"@{author} {reply}" if author else reply
        published = self._call_downstream("reply publish", self._publisher.publish_reply, event.id, reply_text)
        reply_hash = published.get("hash")

        log.info("reply_published", reply_hash=reply_hash)
        return WebhookResult(200, {"status": "success", "hash": reply_hash})

    @staticmethod
    def _call_downstream(operation: str, func: Callable[..., Any], /, *args: Any) -> Any:
        # Collaborators may raise anything; callers only ever see a WebhookError.
        try:
            return func(*args)
        except WebhookError:
            raise
        except Exception as exc:
            raise DownstreamError(f"{operation} failed: {exc}") from exc

    def _react(self, cast_hash: str) -> None:
        log = structlog.get_logger().bind(cast_hash=cast_hash)
        try:
            self._publisher.publish_reaction(cast_hash, REACTION_KIND)
        except Exception:
            log.warning("reaction_failed", kind=REACTION_KIND, exc_info=True)
            return
        log.info("reaction_published", kind=REACTION_KIND)

    def _reject(self, exc: WebhookError, *, trace_id: str, log) -> WebhookResult:
        body: dict[str, Any] = {"status": "error", "error": exc.error, "trace_id": trace_id}
        headers: dict[str, str] = {}

        if isinstance(exc, MethodNotAllowedError):
            headers["Allow"] = ALLOWED_METHOD
        if isinstance(exc, DownstreamError):
            log.error("downstream_failed", error=exc.error, reason=str(exc))
        else:
            log.warning("webhook_rejected", status_code=exc.status_code, error=exc.error, reason=str(exc))

        if self._expose_error_detail:
            body["detail"] = str(exc)
        return WebhookResult(exc.status_code, body, headers)

    def health_snapshot(self) -> dict[str, int]:
        return {
            "dedup_entries": len(self._dedup_cache),
            "response_cache_entries": len(self._response_cache),
            "rate_window_requests": len(self._rate_limiter),
        }
