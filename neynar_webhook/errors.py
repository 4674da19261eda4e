"""Exception taxonomy for the webhook pipeline.

Each :class:`WebhookError` carries the HTTP status it maps to and a stable
machine-readable ``error`` code that is safe to return to the caller.
"""

from __future__ import annotations


class WebhookError(Exception):
    """Base class for failures that translate into an HTTP rejection."""

    status_code = 500
    error = "internal_server_error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.error)


class AuthError(WebhookError):
    status_code = 401
    error = "invalid_signature"


class ValidationError(WebhookError):
    status_code = 400
    error = "invalid_request"


class MethodNotAllowedError(ValidationError):
    status_code = 405
    error = "method_not_allowed"


class PayloadTooLargeError(ValidationError):
    status_code = 413
    error = "payload_too_large"


class BodyReadError(ValidationError):
    status_code = 400
    error = "invalid_body"


class MalformedPayloadError(ValidationError):
    status_code = 400
    error = "invalid_payload"


class RateLimitError(WebhookError):
    status_code = 429
    error = "rate_limited"


class DownstreamError(WebhookError):
    """Generation or publish service failure; never retried by the pipeline."""

    status_code = 500
    error = "downstream_failure"
