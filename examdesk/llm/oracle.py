"""Chat-completions client used as the selection/enrichment oracle.

Speaks the OpenAI-compatible `/chat/completions` wire format (OpenAI,
OpenRouter, local gateways) over plain requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from examdesk.llm.retry import RetriesExhaustedError, RetryableStatusError, RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "openai/gpt-4o-mini"


class OracleError(Exception):
    """Non-retryable upstream failure (bad key, bad request, unexpected payload)."""

    pass


class OracleUnavailableError(OracleError):
    """Upstream kept answering 429/503 (or dropping connections) until retries ran out."""

    pass


@dataclass
class OracleClient:
    api_key: str
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 60
    temperature: float = 0.2
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    session: Optional[requests.Session] = None

    @property
    def endpoint(self) -> str:
        return self.base_url.rstrip("/") + "/chat/completions"

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if "openrouter.ai" in self.base_url:
            headers["HTTP-Referer"] = "https://examdesk.app"
        return headers

    def _post_once(self, payload: Dict[str, Any]) -> str:
        http = self.session or requests
        resp = http.post(self.endpoint, json=payload, headers=self._headers(), timeout=self.timeout)
        if self.retry_policy.is_retryable_status(resp.status_code):
            raise RetryableStatusError(resp.status_code, resp.text or "")
        if resp.status_code == 401:
            raise OracleError("Authentication failed - check LLM_API_KEY")
        if not (200 <= resp.status_code < 300):
            raise OracleError(f"Oracle HTTP {resp.status_code}: {(resp.text or '')[:300]}")
        try:
            data = resp.json()
        except ValueError as e:
            raise OracleError(f"Oracle returned non-JSON body: {e}") from e
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise OracleError(f"Unexpected oracle payload shape: {str(data)[:300]}") from e
        usage = data.get("usage") or {}
        if usage:
            logger.info(
                f"Oracle usage - Prompt: {usage.get('prompt_tokens', 0)}, "
                f"Completion: {usage.get('completion_tokens', 0)}"
            )
        return content or ""

    def complete(self, system_prompt: str, user_prompt: str, *, max_tokens: Optional[int] = None) -> str:
        """Return the raw completion text.

        Raises OracleUnavailableError once retries are exhausted, OracleError
        for anything non-retryable.
        """
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self.temperature,
        }
        if max_tokens:
            payload["max_tokens"] = int(max_tokens)
        try:
            return self.retry_policy.run(lambda: self._post_once(payload), label="oracle")
        except RetriesExhaustedError as e:
            raise OracleUnavailableError(str(e)) from e
        except requests.RequestException as e:
            raise OracleError(f"Oracle request failed: {e}") from e
