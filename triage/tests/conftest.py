"""
conftest.py — shared fixtures and factories for triage tests.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple, Union

import pytest

from triage.config import DEFAULT_BACKENDS, AnalyzerConfig, BackendConfig
from triage.core.preprocessor import preprocess
from triage.schema import PreprocessResult, Suggestion
from triage.telemetry import TelemetryCollector


# ─── Helper factories ───────────────────────────────────────


class StubBackend:
    """Stands in for a TextBackend: replays canned replies in order.

    Each reply is either generated text or an exception to raise.
    """

    def __init__(self, *replies: Union[str, Exception], name: str = "groq") -> None:
        self._replies: List[Union[str, Exception]] = list(replies)
        self.name = name
        self.calls: List[Tuple[str, str]] = []
        self.closed = False

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        reply = self._replies.pop(0) if len(self._replies) > 1 else self._replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply

    def close(self) -> None:
        self.closed = True


def make_backend_config(
    name: str = "groq",
    api_key: Optional[str] = "test-key",
    **overrides,
) -> BackendConfig:
    """BackendConfig based on the default for *name*."""
    base = DEFAULT_BACKENDS[name].model_dump()
    base.update(api_key=api_key, **overrides)
    return BackendConfig(**base)


def make_config(provider: str = "groq", api_key: Optional[str] = "test-key") -> AnalyzerConfig:
    """AnalyzerConfig where only *provider* (if known) carries *api_key*."""
    backends = {
        name: make_backend_config(name, api_key if name == provider else None)
        for name in DEFAULT_BACKENDS
    }
    return AnalyzerConfig(provider=provider, backends=backends)


def make_suggestion(
    likely_cause: str = "Unknown",
    confidence: float = 0.5,
    next_steps: str = "Review logs and metrics.",
    degraded: bool = False,
) -> Suggestion:
    return Suggestion(
        likely_cause=likely_cause,
        reasoning="test",
        next_steps=next_steps,
        confidence=confidence,
        degraded=degraded,
    )


def make_preprocessed(lines: Sequence[str]) -> PreprocessResult:
    return preprocess(list(lines))


# ─── Fixtures ───────────────────────────────────────────────


@pytest.fixture()
def telemetry() -> TelemetryCollector:
    return TelemetryCollector()


@pytest.fixture()
def db_incident_logs() -> List[str]:
    return ["12:00 DB timeout", "12:01 DB timeout", "12:02 DB connection reset"]
