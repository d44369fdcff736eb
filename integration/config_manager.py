"""Configuration management — load, validate, merge YAML + env vars.

Uses Pydantic v2 for schema validation and PyYAML for file parsing.
Credentials are never read from the file: ``to_analyzer_config``
resolves them from the environment at the last moment.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from triage.config import DEFAULT_BACKENDS, AnalyzerConfig, BackendConfig
from triage.llm.backends import BACKENDS, MODEL_PLACEHOLDERS


# ── Pydantic settings models ───────────────────────────────────────


class SystemSettings(BaseModel):
    """Top-level system settings."""

    model_config = ConfigDict(frozen=True)

    project_name: str = "Incident Triage"
    version: str = "1.0.0"
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        upper = v.upper()
        if upper not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}, got '{v}'")
        return upper


class BackendSettings(BaseModel):
    """Per-backend settings; ``api_key_env_var`` defaults to ``<NAME>_API_KEY``."""

    model_config = ConfigDict(frozen=True)

    model: str = ""
    url: str = ""
    api_key_env_var: Optional[str] = None


def _default_backend_settings() -> Dict[str, BackendSettings]:
    return {
        name: BackendSettings(model=b.model, url=b.url)
        for name, b in DEFAULT_BACKENDS.items()
    }


class LLMSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: str = "gemini"
    backends: Dict[str, BackendSettings] = Field(default_factory=_default_backend_settings)

    @field_validator("provider")
    @classmethod
    def _normalize_provider(cls, v: str) -> str:
        return v.strip().lower()


# ── Top-level config ───────────────────────────────────────────────


class SystemConfig(BaseModel):
    """Complete triage configuration."""

    model_config = ConfigDict(frozen=True)

    system: SystemSettings = Field(default_factory=SystemSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)


# ── ConfigManager ──────────────────────────────────────────────────

# Environment variable → config path mapping.  Per-backend
# ``<NAME>_MODEL`` / ``<NAME>_URL`` overrides are added at merge time.
_ENV_MAP: Dict[str, str] = {
    "TRIAGE_LOG_LEVEL": "system.log_level",
    "AI_PROVIDER": "llm.provider",
}

_BACKEND_ENV_FIELDS = ("model", "url")


class ConfigManager:
    """Load, validate, and merge configuration from YAML + env vars."""

    @staticmethod
    def load(
        config_path: str = "config.yaml",
        environ: Optional[Mapping[str, str]] = None,
    ) -> SystemConfig:
        """Load config from *config_path*, validate, merge env vars.

        A missing file yields the defaults.  Backend blocks in the file
        are merged into the default backends field by field.

        Args:
            config_path: Path to the YAML configuration file.
            environ: Environment mapping (defaults to ``os.environ``).

        Returns:
            Validated :class:`SystemConfig`.

        Raises:
            yaml.YAMLError: If the file contains invalid YAML.
            pydantic.ValidationError: If the data fails validation.
        """
        path = Path(config_path)
        if path.exists():
            with open(path, encoding="utf-8") as fh:
                raw: Dict[str, Any] = yaml.safe_load(fh) or {}
        else:
            raw = {}

        base = SystemConfig().model_dump()
        _deep_merge(base, raw)
        config = SystemConfig.model_validate(base)
        return ConfigManager.merge_env_vars(config, environ)

    @staticmethod
    def validate(config: SystemConfig) -> List[str]:
        """Return a list of human-readable validation issues.

        An empty list means the config is valid.
        """
        issues: List[str] = []

        if config.llm.provider not in config.llm.backends:
            issues.append(
                f"llm.provider '{config.llm.provider}' is not one of "
                f"{sorted(config.llm.backends)}"
            )

        for name, backend in config.llm.backends.items():
            if name not in BACKENDS:
                issues.append(f"llm.backends.{name} has no registered backend")
            if not backend.model.strip():
                issues.append(f"llm.backends.{name}.model must not be empty")
            if not backend.url.strip():
                issues.append(f"llm.backends.{name}.url must not be empty")
            elif name == "gemini" and not any(p in backend.url for p in MODEL_PLACEHOLDERS):
                issues.append("llm.backends.gemini.url must contain {model} or %s for the model name")

        return issues

    @staticmethod
    def merge_env_vars(
        config: SystemConfig,
        environ: Optional[Mapping[str, str]] = None,
    ) -> SystemConfig:
        """Override config values from environment variables.

        Returns a **new** frozen :class:`SystemConfig` with overrides
        applied.
        """
        env = os.environ if environ is None else environ
        env_map = dict(_ENV_MAP)
        for name in config.llm.backends:
            for field in _BACKEND_ENV_FIELDS:
                env_map[f"{name.upper()}_{field.upper()}"] = f"llm.backends.{name}.{field}"

        overrides: Dict[str, Any] = {}
        for env_key, config_path in env_map.items():
            value = env.get(env_key)
            if value is None or not value.strip():
                continue

            parts = config_path.split(".")
            d = overrides
            for p in parts[:-1]:
                d = d.setdefault(p, {})
            d[parts[-1]] = value.strip()

        if not overrides:
            return config

        base = config.model_dump()
        _deep_merge(base, overrides)
        return SystemConfig.model_validate(base)

    @staticmethod
    def to_analyzer_config(
        config: SystemConfig,
        environ: Optional[Mapping[str, str]] = None,
    ) -> AnalyzerConfig:
        """Resolve credentials and build the core's :class:`AnalyzerConfig`."""
        env = os.environ if environ is None else environ
        backends: Dict[str, BackendConfig] = {}

        for name, settings in config.llm.backends.items():
            key_var = settings.api_key_env_var or f"{name.upper()}_API_KEY"
            api_key = (env.get(key_var) or "").strip() or None
            backends[name] = BackendConfig(
                name=name,
                api_key=api_key,
                model=settings.model,
                url=settings.url,
            )

        return AnalyzerConfig(provider=config.llm.provider, backends=backends)


# ── helpers ────────────────────────────────────────────────────────


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge *overrides* into *base* (mutating)."""
    for k, v in overrides.items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
