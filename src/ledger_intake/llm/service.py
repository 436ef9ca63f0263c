"""Language-model client.

Features:
- Ollama (/api/chat) and OpenAI-compatible (/v1/chat/completions) providers
- Cascading model fallback (fast -> fallback)
- Concurrency limiting via semaphore

Every failure surfaces as LLMError; callers treat it exactly like an empty
completion and fall back to the deterministic path.

Privacy constraints:
- Never log prompts or raw document content at INFO level
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

import httpx

if TYPE_CHECKING:
    from ledger_intake.config import LLMConfig

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Raised when a completion cannot be obtained from any model."""

    pass


class LLMConcurrencyLimiter:
    """Caps the number of model requests in flight across threads.

    Usage:
        with limiter.slot(timeout=30):
            ...  # one request
    """

    def __init__(self, max_concurrent: int = 2) -> None:
        self.max_concurrent = max_concurrent
        self._slots = threading.BoundedSemaphore(max_concurrent)
        self._in_flight = 0
        self._lock = threading.Lock()

    @contextmanager
    def slot(self, timeout: float | None = None) -> Iterator[None]:
        """Hold one request slot for the duration of the block.

        Raises:
            LLMError: if no slot frees up within ``timeout`` seconds.
        """
        started = time.monotonic()
        if not self._slots.acquire(timeout=timeout):
            waited = time.monotonic() - started
            raise LLMError(
                f"No free model slot after {waited:.1f}s "
                f"(max={self.max_concurrent}, in flight={self.in_flight})"
            )
        with self._lock:
            self._in_flight += 1
        try:
            yield
        finally:
            with self._lock:
                self._in_flight -= 1
            self._slots.release()

    @property
    def in_flight(self) -> int:
        """Requests currently holding a slot."""
        with self._lock:
            return self._in_flight


class LLMService:
    """Chat/completion client for the configured provider.

    Usage:
        with LLMService(config.llm) as llm:
            text = llm.chat(system_prompt, user_message)
    """

    def __init__(self, config: LLMConfig, client: httpx.Client | None = None) -> None:
        """Initialize the client.

        Args:
            config: Language-model configuration.
            client: Preconfigured HTTP client (mainly for tests).
        """
        self.llm_config = config

        headers = {}
        if config.provider == "openai" and config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"

        # connect/write/pool are short; read waits for the model
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(
                connect=10.0,
                read=float(config.timeout_seconds),
                write=30.0,
                pool=10.0,
            ),
            headers=headers,
        )
        self._limiter = LLMConcurrencyLimiter(max_concurrent=config.max_concurrent)

    @property
    def is_enabled(self) -> bool:
        """Check if the model is enabled (master switch)."""
        return self.llm_config.enabled

    @property
    def models(self) -> list[str]:
        """Models in cascade order, without duplicates."""
        models = [self.llm_config.model_fast]
        fallback = self.llm_config.model_fallback
        if fallback and fallback not in models:
            models.append(fallback)
        return [m for m in models if m]

    def chat(self, system_prompt: str | None, user_message: str) -> str:
        """Run a chat completion through the model cascade.

        Returns:
            The first non-empty completion text.

        Raises:
            LLMError: if disabled, or every model failed or returned nothing.
        """
        if not self.is_enabled:
            raise LLMError("LLM is disabled")

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_message})
        logger.debug("LLM chat: %d messages, user message %d chars", len(messages), len(user_message))

        last_error: LLMError | None = None
        for model in self.models:
            try:
                content = self._call_model(model, messages)
            except LLMError as e:
                logger.warning("Model %s failed: %s", model, e)
                last_error = e
                continue
            if content.strip():
                return content
            logger.warning("Model %s returned an empty completion", model)

        if last_error:
            raise last_error
        raise LLMError("All models returned empty completions")

    def complete(self, prompt: str) -> str:
        """Single-prompt completion (no system message)."""
        return self.chat(None, prompt)

    def _call_model(self, model: str, messages: list[dict]) -> str:
        """Call the provider once, holding a concurrency slot."""
        with self._limiter.slot(timeout=self.llm_config.timeout_seconds):
            try:
                if self.llm_config.provider == "openai":
                    return self._call_openai(model, messages)
                return self._call_ollama(model, messages)
            except httpx.TimeoutException as e:
                raise LLMError(
                    f"Request timed out after {self.llm_config.timeout_seconds}s"
                ) from e
            except httpx.HTTPStatusError as e:
                raise LLMError(
                    f"API error {e.response.status_code} for model '{model}'"
                ) from e
            except httpx.RequestError as e:
                raise LLMError(
                    f"Request failed: {e} (URL: {self.llm_config.base_url})"
                ) from e
            except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
                raise LLMError(f"Malformed response from model '{model}': {e}") from e

    def _call_ollama(self, model: str, messages: list[dict]) -> str:
        url = f"{self.llm_config.ollama_url.rstrip('/')}/api/chat"
        payload = {"model": model, "messages": messages, "stream": False}
        logger.debug("Calling Ollama model %s at %s", model, self.llm_config.ollama_url)

        response = self._client.post(url, json=payload)
        response.raise_for_status()
        body = response.json()
        message = body.get("message") if isinstance(body, dict) else None
        if not isinstance(message, dict):
            raise ValueError("response has no 'message' object")
        content = message.get("content") or ""
        if not isinstance(content, str):
            raise TypeError("message content is not text")
        logger.debug("Ollama %s returned %d chars", model, len(content))
        return content

    def _call_openai(self, model: str, messages: list[dict]) -> str:
        url = f"{self.llm_config.openai_url.rstrip('/')}/v1/chat/completions"
        payload = {"model": model, "messages": messages, "temperature": 0}
        logger.debug("Calling OpenAI-compatible model %s", model)

        response = self._client.post(url, json=payload)
        response.raise_for_status()
        content = response.json()["choices"][0]["message"]["content"] or ""
        if not isinstance(content, str):
            raise TypeError("message content is not text")
        logger.debug("OpenAI %s returned %d chars", model, len(content))
        return content

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> LLMService:
        return self

    def __exit__(self, *args) -> None:
        self.close()
