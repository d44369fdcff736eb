"""
File: llm/backends.py
Purpose: Text-generation backends (Gemini, OpenAI, Grok, Groq).
Dependencies: httpx, groq SDK
Performance: One network round-trip per call (two on HTTP 429).

Every backend speaks the same contract::

    text = backend.generate(system_prompt, user_prompt)

``generate`` either returns the generated text or raises
``BackendUnavailable``.  HTTP 429 triggers exactly one retry after a
fixed ``RATE_LIMIT_RETRY_DELAY`` seconds; no other status is retried.
Sampling temperature and request timeout are fixed as well.
"""

from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type

import groq
import httpx

from triage.config import BackendConfig
from triage.errors import BackendUnavailable
from triage.telemetry import TelemetryCollector, get_logger

logger = get_logger("triage.llm.backends")

RATE_LIMITED = 429
TEMPERATURE = 0.2
REQUEST_TIMEOUT_SECONDS = 30.0
RATE_LIMIT_RETRY_DELAY = 3.0

MODEL_PLACEHOLDERS = ("{model}", "%s")


@dataclass(frozen=True)
class BackendReply:
    """Raw status + body of one backend round-trip (status 0 = transport error)."""
    status: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def _messages(system_prompt: str, user_prompt: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]


def _chat_message_content(body: str) -> str:
    """``choices[0].message.content`` of a chat-completions response."""
    try:
        content = json.loads(body)["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        raise BackendUnavailable(0, f"Unexpected chat-completions response: {body[:200]}") from exc
    if not isinstance(content, str):
        raise BackendUnavailable(0, "Chat-completions response has no text content")
    return content


def model_url(template: str, model: str) -> str:
    """Substitute *model* into a URL template using ``{model}`` or ``%s``.

    Other braces in the template are left untouched.
    """
    if "{model}" in template:
        return template.replace("{model}", model)
    if "%s" in template:
        return template.replace("%s", model, 1)
    return template


# ═══════════════════════════════════════════════════════════════
#  BASE BACKEND
# ═══════════════════════════════════════════════════════════════


class TextBackend(ABC):
    """Base class holding the retry-once-on-429 policy.

    Args:
        config: Backend settings (credential already resolved).
        sleep: Pause function used before the 429 retry.
        telemetry: Optional telemetry collector (retry counter).
    """

    def __init__(
        self,
        config: BackendConfig,
        sleep: Callable[[float], None] = time.sleep,
        telemetry: Optional[TelemetryCollector] = None,
    ) -> None:
        self._config = config
        self._sleep = sleep
        self._telemetry = telemetry

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def model(self) -> str:
        return self._config.model

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        """Generate text for the given prompts.

        Raises:
            BackendUnavailable: On any non-2xx reply, transport error,
                unexpected client failure or response without
                extractable text.
        """
        reply = self._attempt(system_prompt, user_prompt)

        if reply.status == RATE_LIMITED:
            logger.warning(
                f"{self.name} rate limited; retrying once in {RATE_LIMIT_RETRY_DELAY}s",
                extra={"layer": "backend"},
            )
            if self._telemetry:
                self._telemetry.record_retry(self.name)
            self._sleep(RATE_LIMIT_RETRY_DELAY)
            reply = self._attempt(system_prompt, user_prompt)

        if not reply.ok:
            logger.warning(
                f"{self.name} API error (status={reply.status})",
                extra={"layer": "backend", "context": {"body": reply.body[:500]}},
            )
            raise BackendUnavailable(reply.status, reply.body)

        try:
            return self._extract_text(reply.body)
        except BackendUnavailable:
            raise
        except Exception as exc:
            logger.error(
                f"{self.name} response could not be read: {exc!r}",
                extra={"layer": "backend"},
            )
            raise BackendUnavailable(0, f"{type(exc).__name__}: {exc}") from exc

    def close(self) -> None:
        """Release any client this backend created."""

    def _attempt(self, system_prompt: str, user_prompt: str) -> BackendReply:
        """One round-trip; any failure the client raises becomes status 0."""
        try:
            return self._send(system_prompt, user_prompt)
        except Exception as exc:
            logger.error(
                f"{self.name} request raised {type(exc).__name__}: {exc}",
                extra={"layer": "backend"},
            )
            return BackendReply(0, f"{type(exc).__name__}: {exc}")

    @abstractmethod
    def _send(self, system_prompt: str, user_prompt: str) -> BackendReply:
        """Perform one round-trip; HTTP errors come back as a reply."""

    @abstractmethod
    def _extract_text(self, body: str) -> str:
        """Pull the generated text out of a successful response body."""


class HttpBackend(TextBackend):
    """Backend spoken over plain HTTPS with httpx.

    Args:
        config: Backend settings.
        client: Optional pre-built ``httpx.Client`` (tests pass one
            wired to ``httpx.MockTransport``).
    """

    def __init__(
        self,
        config: BackendConfig,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
        telemetry: Optional[TelemetryCollector] = None,
    ) -> None:
        super().__init__(config, sleep=sleep, telemetry=telemetry)
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=REQUEST_TIMEOUT_SECONDS)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _post(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> BackendReply:
        try:
            response = self._client.post(url, json=payload, headers=headers, params=params)
        except httpx.HTTPError as exc:
            logger.error(f"{self.name} request failed: {exc}", extra={"layer": "backend"})
            return BackendReply(0, str(exc))
        return BackendReply(response.status_code, response.text)


# ═══════════════════════════════════════════════════════════════
#  CONCRETE BACKENDS
# ═══════════════════════════════════════════════════════════════


class GeminiBackend(HttpBackend):
    """Google Gemini ``generateContent``; the key travels as a query parameter."""

    def _send(self, system_prompt: str, user_prompt: str) -> BackendReply:
        url = model_url(self._config.url, self._config.model)
        payload = {
            "contents": [{"parts": [{"text": f"{system_prompt}\n\n{user_prompt}"}]}],
            "generationConfig": {"temperature": TEMPERATURE},
        }
        return self._post(url, payload, params={"key": self._config.api_key or ""})

    def _extract_text(self, body: str) -> str:
        try:
            text = json.loads(body)["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise BackendUnavailable(0, f"Unexpected Gemini response: {body[:200]}") from exc
        if not isinstance(text, str):
            raise BackendUnavailable(0, "Gemini response has no text part")
        return text


class ChatCompletionsBackend(HttpBackend):
    """OpenAI-compatible chat completions with bearer auth (used for Grok)."""

    def _payload(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        return {
            "model": self._config.model,
            "messages": _messages(system_prompt, user_prompt),
            "temperature": TEMPERATURE,
        }

    def _send(self, system_prompt: str, user_prompt: str) -> BackendReply:
        return self._post(
            self._config.url,
            self._payload(system_prompt, user_prompt),
            headers={"Authorization": f"Bearer {self._config.api_key or ''}"},
        )

    def _extract_text(self, body: str) -> str:
        return _chat_message_content(body)


class OpenAIBackend(ChatCompletionsBackend):
    """OpenAI chat completions in JSON-object response mode."""

    def _payload(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        payload = super()._payload(system_prompt, user_prompt)
        payload["response_format"] = {"type": "json_object"}
        return payload


class GroqBackend(TextBackend):
    """Groq via the official SDK.

    SDK-level retries are disabled so the 429 policy above is the only
    retry in play.

    Args:
        config: Backend settings.
        client: Optional ``groq.Groq`` instance (or stand-in).
    """

    def __init__(
        self,
        config: BackendConfig,
        client: Any = None,
        sleep: Callable[[float], None] = time.sleep,
        telemetry: Optional[TelemetryCollector] = None,
    ) -> None:
        super().__init__(config, sleep=sleep, telemetry=telemetry)
        self._owns_client = client is None
        self._client = client or groq.Groq(
            api_key=config.api_key,
            timeout=REQUEST_TIMEOUT_SECONDS,
            max_retries=0,
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _send(self, system_prompt: str, user_prompt: str) -> BackendReply:
        try:
            completion = self._client.chat.completions.create(
                model=self._config.model,
                messages=_messages(system_prompt, user_prompt),
                temperature=TEMPERATURE,
            )
        except groq.APIStatusError as exc:
            return BackendReply(exc.status_code, exc.response.text)
        except groq.APIConnectionError as exc:
            logger.error(f"groq request failed: {exc}", extra={"layer": "backend"})
            return BackendReply(0, str(exc))
        return BackendReply(200, completion.model_dump_json())

    def _extract_text(self, body: str) -> str:
        return _chat_message_content(body)


# ═══════════════════════════════════════════════════════════════
#  REGISTRY
# ═══════════════════════════════════════════════════════════════


BACKENDS: Dict[str, Type[TextBackend]] = {
    "gemini": GeminiBackend,
    "openai": OpenAIBackend,
    "grok": ChatCompletionsBackend,
    "groq": GroqBackend,
}


def create_backend(
    config: BackendConfig,
    telemetry: Optional[TelemetryCollector] = None,
) -> TextBackend:
    """Factory to create the backend registered for ``config.name``.

    Raises:
        ValueError: If no backend is registered under that name.
    """
    backend_cls = BACKENDS.get(config.name)
    if backend_cls is None:
        raise ValueError(f"No backend registered for provider '{config.name}'")
    return backend_cls(config, telemetry=telemetry)
