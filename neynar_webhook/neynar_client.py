"""Thin wrapper around the Neynar REST API used to publish casts and reactions."""

from __future__ import annotations

from typing import Any

import requests

from .errors import DownstreamError
from .outbound import DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_WAIT_SECONDS, DEFAULT_TIMEOUT_SECONDS, post_json

DEFAULT_BASE_URL = "https://api.neynar.com"
CAST_PATH = "/v2/farcaster/cast"
REACTION_PATH = "/v2/farcaster/reaction"


class NeynarClient:
    """Encapsulate Neynar publish calls for easier testing."""

    def __init__(
        self,
        *,
        api_key: str,
        signer_uuid: str,
        base_url: str = DEFAULT_BASE_URL,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_wait: float = DEFAULT_RETRY_WAIT_SECONDS,
        channel_id: str | None = None,
    ) -> None:
        if not api_key or not signer_uuid:
            raise ValueError("Both a Neynar API key and a signer UUID must be provided.")

        self._api_key = api_key
        self._signer_uuid = signer_uuid
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._retry_wait = retry_wait
        self._channel_id = channel_id

    @property
    def session(self) -> requests.Session:
        """Expose the underlying session for advanced use cases."""

        return self._session

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        return post_json(
            self._session,
            f"{self._base_url}{path}",
            payload={"signer_uuid": self._signer_uuid, **payload},
            headers={
                "accept": "application/json",
                "x-api-key": self._api_key,
                "x-neynar-api-version": "v2",
            },
            service="neynar",
            timeout=self._timeout,
            max_attempts=self._max_attempts,
            retry_wait=self._retry_wait,
        )

    def publish_reply(self, parent_hash: str, text: str) -> dict[str, str]:
        """Publish *text* as a reply to the cast *parent_hash* and return its hash."""

        payload: dict[str, Any] = {"text": text, "parent": parent_hash}
        if self._channel_id:
            payload["channel_id"] = self._channel_id

        response = self._post(CAST_PATH, payload)
        cast = response.get("cast") or {}
        reply_hash = cast.get("hash")
        if not reply_hash:
            raise DownstreamError("neynar response did not include the published cast hash")
        return {"hash": reply_hash}

    def publish_reaction(self, target_hash: str, kind: str = "like") -> None:
        """React to the cast *target_hash* with *kind* (``like`` or ``recast``)."""

        self._post(REACTION_PATH, {"reaction_type": kind, "target": target_hash})
