"""Shared HTTP plumbing for calls to the generation and publish services."""

from __future__ import annotations

import logging
from typing import Any, Mapping

import requests
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from .errors import DownstreamError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_WAIT_SECONDS = 1.0


class RetryableStatusError(requests.HTTPError):
    """Raised for 429 and 5xx responses, which are worth another attempt."""


def post_json(
    session: requests.Session,
    url: str,
    *,
    payload: Mapping[str, Any],
    headers: Mapping[str, str],
    service: str,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    retry_wait: float = DEFAULT_RETRY_WAIT_SECONDS,
) -> dict[str, Any]:
    """POST *payload* as JSON and return the decoded response body.

    Connection failures, timeouts, 429 and 5xx responses are retried up to
    *max_attempts* times; anything still failing becomes a DownstreamError.
    """

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(retry_wait),
        retry=retry_if_exception_type(
            (requests.ConnectionError, requests.Timeout, RetryableStatusError)
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )

    try:
        for attempt in retrying:
            with attempt:
                response = session.post(url, json=dict(payload), headers=dict(headers), timeout=timeout)
                if response.status_code == 429 or response.status_code >= 500:
                    raise RetryableStatusError(
                        f"{service} responded with {response.status_code}", response=response
                    )
                response.raise_for_status()
                body = response.json()
    except requests.RequestException as exc:
        raise DownstreamError(f"{service} request failed: {exc}") from exc
    except ValueError as exc:
        raise DownstreamError(f"{service} returned invalid JSON") from exc

    if not isinstance(body, dict):
        raise DownstreamError(f"{service} returned an unexpected payload")
    return body
