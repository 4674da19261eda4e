"""Reply generation through an OpenAI-compatible chat completions endpoint."""

from __future__ import annotations

import requests

from .config import DEFAULT_SYSTEM_PROMPT
from .errors import DownstreamError
from .outbound import DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_WAIT_SECONDS, DEFAULT_TIMEOUT_SECONDS, post_json

DEFAULT_BASE_URL = "https://api.openai.com"
COMPLETIONS_PATH = "/v1/chat/completions"


class OpenAIReplyGenerator:
    """Callable turning cast text into reply text."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gpt-4-turbo-preview",
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        base_url: str = DEFAULT_BASE_URL,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_wait: float = DEFAULT_RETRY_WAIT_SECONDS,
        temperature: float = 0.7,
        max_tokens: int = 150,
    ) -> None:
        if not api_key:
            raise ValueError("An OpenAI API key must be provided.")

        self._api_key = api_key
        self._model = model
        self._system_prompt = system_prompt
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._retry_wait = retry_wait
        self._temperature = temperature
        self._max_tokens = max_tokens

    def __call__(self, text: str) -> str:
        response = post_json(
            self._session,
            f"{self._base_url}{COMPLETIONS_PATH}",
            payload={
                "model": self._model,
                "messages": [
                    {"role": "system", "content": self._system_prompt},
                    {"role": "user", "content": text.strip()},
                ],
                "temperature": self._temperature,
                "max_tokens": self._max_tokens,
            },
            headers={"Authorization": f"Bearer {self._api_key}"},
            service="openai",
            timeout=self._timeout,
            max_attempts=self._max_attempts,
            retry_wait=self._retry_wait,
        )

        choices = response.get("choices") or []
        content = ""
        if choices:
            content = ((choices[0] or {}).get("message") or {}).get("content") or ""
        content = content.strip()
        if not content:
            raise DownstreamError("openai returned an empty completion")
        return content
