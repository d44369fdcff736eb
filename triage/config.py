"""
File: config.py
Purpose: Backend selection and per-backend connection settings.
Dependencies: pydantic
Performance: O(1), static config, no I/O

The core never reads the environment.  A composition root (the CLI,
see ``integration.config_manager``) resolves credentials and hands an
``AnalyzerConfig`` to :class:`triage.agent.IncidentAnalyzer`.
"""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


# ═══════════════════════════════════════════════════════════════
#  BACKEND CONFIGURATION
# ═══════════════════════════════════════════════════════════════


class BackendConfig(BaseModel):
    """Connection settings for one text-generation backend.

    API keys are NEVER stored in code; they are only resolved from env vars.

    Example::

        cfg = BackendConfig(name="groq", api_key="gsk_...", model="llama-3.3-70b-versatile")
        cfg.has_credential  # True
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Backend id: gemini | openai | grok | groq")
    api_key: Optional[str] = Field(default=None, repr=False)
    model: str = ""
    url: str = ""

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    @property
    def credential_env_var(self) -> str:
        return f"{self.name.upper()}_API_KEY"

    @property
    def model_env_var(self) -> str:
        return f"{self.name.upper()}_MODEL"


DEFAULT_BACKENDS: Dict[str, BackendConfig] = {
    "gemini": BackendConfig(
        name="gemini",
        model="gemini-2.0-flash",
        url="https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent",
    ),
    "openai": BackendConfig(
        name="openai",
        model="gpt-4o-mini",
        url="https://api.openai.com/v1/chat/completions",
    ),
    "grok": BackendConfig(
        name="grok",
        model="grok-2",
        url="https://api.x.ai/v1/chat/completions",
    ),
    "groq": BackendConfig(
        name="groq",
        model="llama-3.3-70b-versatile",
        url="https://api.groq.com/openai/v1/chat/completions",
    ),
}


# ═══════════════════════════════════════════════════════════════
#  TOP-LEVEL CONFIG
# ═══════════════════════════════════════════════════════════════


class AnalyzerConfig(BaseModel):
    """Which backend is active, plus settings for every known backend.

    Example::

        config = AnalyzerConfig(
            provider="groq",
            backends={"groq": BackendConfig(name="groq", api_key="gsk_...")},
        )
        config.selected_backend().name  # "groq"
    """

    model_config = ConfigDict(frozen=True)

    provider: str = "gemini"
    backends: Dict[str, BackendConfig] = Field(
        default_factory=lambda: dict(DEFAULT_BACKENDS)
    )

    def selected_backend(self) -> Optional[BackendConfig]:
        """Settings of the configured provider, or None if unknown."""
        return self.backends.get(self.provider.strip().lower())

    def any_credential(self) -> bool:
        """True if at least one backend has a credential."""
        return any(b.has_credential for b in self.backends.values())

    def credential_env_vars(self) -> list[str]:
        return [b.credential_env_var for b in self.backends.values()]
