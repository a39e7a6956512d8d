from __future__ import annotations
from typing import Any, Callable, Dict, Optional
import json
import logging
import time

import httpx
from tenacity import Retrying, RetryError, RetryCallState, stop_after_attempt, retry_if_exception, before_sleep_log

from .base import (
    TextGenerator, GenerateRequest, UpstreamTransientError,
    UpstreamTerminalError, UpstreamStatusError,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"

def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500

def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, UpstreamTransientError)

def first_candidate_text(data: Any) -> str:
    """Return the first non-empty text part across all candidates, or ''."""
    if not isinstance(data, dict):
        return ""
    for candidate in data.get("candidates") or []:
        if not isinstance(candidate, dict):
            continue
        content = candidate.get("content")
        if not isinstance(content, dict):
            continue
        for part in content.get("parts") or []:
            if isinstance(part, dict) and isinstance(part.get("text"), str) and part["text"]:
                return part["text"]
    return ""

class GeminiProvider(TextGenerator):
    """
    generateContent client with linear backoff.

    Attempt n (1-based) that fails transiently is followed by a sleep of
    n * unit, where unit is status_backoff_unit_s for 429/5xx responses and
    backoff_unit_s for transport, decoding and empty-response failures.

    Each attempt, body included, must finish within request_timeout_s of its
    start; a response still trickling in past that is a transient failure.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        base_url: str = DEFAULT_BASE_URL,
        request_timeout_s: float = 90.0,
        max_retries: int = 4,
        backoff_unit_s: float = 2.0,
        status_backoff_unit_s: float = 3.0,
        temperature: float = 0.7,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client or httpx.Client(timeout=request_timeout_s)
        self.base_url = base_url.rstrip("/")
        self.request_timeout_s = request_timeout_s
        self.max_retries = max_retries
        self.backoff_unit_s = backoff_unit_s
        self.status_backoff_unit_s = status_backoff_unit_s
        self.temperature = temperature
        self._sleep = sleep
        self._clock = clock

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def _endpoint(self, model: str) -> str:
        return f"{self.base_url}/v1beta/models/{model}:generateContent"

    def _build_payload(self, req: GenerateRequest) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": req.user_prompt}]}],
            "generation_config": {"temperature": req.temperature},
        }
        if req.system_prompt:
            payload["system_instruction"] = {"parts": [{"text": req.system_prompt}]}
        return payload

    def _backoff(self, retry_state: RetryCallState) -> float:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        unit = self.status_backoff_unit_s if isinstance(exc, UpstreamStatusError) else self.backoff_unit_s
        return retry_state.attempt_number * unit

    def _read_body(self, response: httpx.Response, deadline: float) -> bytes:
        # httpx limits each read separately; the deadline covers the whole body
        chunks = []
        for chunk in response.iter_bytes():
            if self._clock() > deadline:
                raise UpstreamTransientError("attempt deadline exceeded")
            chunks.append(chunk)
        if self._clock() > deadline:
            raise UpstreamTransientError("attempt deadline exceeded")
        return b"".join(chunks)

    def _attempt(self, url: str, api_key: str, payload: Dict[str, Any]) -> str:
        deadline = self._clock() + self.request_timeout_s
        try:
            with self.client.stream(
                "POST", url, params={"key": api_key}, json=payload, timeout=self.request_timeout_s
            ) as response:
                body = self._read_body(response, deadline)
        except httpx.HTTPError as e:
            raise UpstreamTransientError(f"transport failure: {e}") from e
        text_body = body.decode("utf-8", errors="replace")

        if _is_retryable_status(response.status_code):
            raise UpstreamStatusError(response.status_code, text_body)
        if response.status_code != 200:
            raise UpstreamTerminalError(f"gemini api error {response.status_code}: {text_body}")

        try:
            data = json.loads(body)
        except ValueError as e:
            raise UpstreamTransientError(f"undecodable response: {e}") from e

        text = first_candidate_text(data)
        if not text:
            raise UpstreamTransientError("empty response")
        return text

    def chat(self, req: GenerateRequest) -> str:
        url = self._endpoint(req.model)
        payload = self._build_payload(req)
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._backoff,
            retry=retry_if_exception(_is_retryable),
            sleep=self._sleep,
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )
        t0 = time.perf_counter()
        try:
            text = retrying(self._attempt, url, req.api_key, payload)
        except RetryError as e:
            last = e.last_attempt.exception()
            raise UpstreamTerminalError(f"gemini failed after {self.max_attempts} attempts: {last}") from last
        logger.debug(f"gemini {req.model} responded in {time.perf_counter() - t0:.2f}s")
        return text

    def generate(self, model: str, api_key: str, system_prompt: str, user_prompt: str) -> str:
        return self.chat(GenerateRequest(
            model=model,
            api_key=api_key,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            temperature=self.temperature,
        ))

    def health_check(self) -> bool:
        return not self.client.is_closed
