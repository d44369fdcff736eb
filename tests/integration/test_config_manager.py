"""Tests for integration.config_manager — YAML + env var config loading."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest
from pydantic import ValidationError

from integration.config_manager import (
    ConfigManager,
    LLMSettings,
    SystemConfig,
    _deep_merge,
)


def _write(tmp_path: Path, body: str) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return str(path)


# ── SystemConfig defaults ──────────────────────────────────────────


class TestSystemConfigDefaults:
    def test_default_instantiation(self) -> None:
        cfg = SystemConfig()
        assert cfg.system.log_level == "INFO"
        assert cfg.system.version == "1.0.0"
        assert cfg.llm.provider == "gemini"

    def test_default_backends(self) -> None:
        backends = SystemConfig().llm.backends
        assert set(backends) == {"gemini", "openai", "grok", "groq"}
        assert backends["openai"].model == "gpt-4o-mini"
        assert backends["groq"].api_key_env_var is None

    def test_provider_normalized(self) -> None:
        assert LLMSettings(provider="  GROQ ").provider == "groq"

    def test_bad_log_level(self) -> None:
        with pytest.raises(ValidationError):
            SystemConfig.model_validate({"system": {"log_level": "LOUD"}})


# ── load ───────────────────────────────────────────────────────────


class TestLoad:
    def test_missing_file_yields_defaults(self, tmp_path: Path) -> None:
        cfg = ConfigManager.load(str(tmp_path / "nope.yaml"), environ={})
        assert cfg == SystemConfig()

    def test_partial_backend_block_merged(self, tmp_path: Path) -> None:
        path = _write(tmp_path, """
            llm:
              provider: groq
              backends:
                groq:
                  model: llama-3.1-8b-instant
        """)
        cfg = ConfigManager.load(path, environ={})
        assert cfg.llm.provider == "groq"
        assert cfg.llm.backends["groq"].model == "llama-3.1-8b-instant"
        assert cfg.llm.backends["groq"].url.startswith("https://api.groq.com")
        assert "gemini" in cfg.llm.backends

    def test_empty_file(self, tmp_path: Path) -> None:
        assert ConfigManager.load(_write(tmp_path, ""), environ={}) == SystemConfig()

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        import yaml

        with pytest.raises(yaml.YAMLError):
            ConfigManager.load(_write(tmp_path, "llm: [unclosed"), environ={})


# ── env overrides ──────────────────────────────────────────────────


class TestEnvOverrides:
    def test_provider_and_log_level(self) -> None:
        cfg = ConfigManager.merge_env_vars(
            SystemConfig(), {"AI_PROVIDER": "OpenAI", "TRIAGE_LOG_LEVEL": "debug"}
        )
        assert cfg.llm.provider == "openai"
        assert cfg.system.log_level == "DEBUG"

    def test_backend_model_and_url(self) -> None:
        cfg = ConfigManager.merge_env_vars(
            SystemConfig(),
            {"GROQ_MODEL": "mixtral-8x7b", "GROK_URL": "https://proxy.local/v1/chat"},
        )
        assert cfg.llm.backends["groq"].model == "mixtral-8x7b"
        assert cfg.llm.backends["grok"].url == "https://proxy.local/v1/chat"

    def test_blank_values_ignored(self) -> None:
        cfg = ConfigManager.merge_env_vars(SystemConfig(), {"AI_PROVIDER": "  "})
        assert cfg.llm.provider == "gemini"

    def test_no_overrides_returns_same(self) -> None:
        cfg = SystemConfig()
        assert ConfigManager.merge_env_vars(cfg, {}) is cfg


# ── validate ───────────────────────────────────────────────────────


class TestValidate:
    def test_defaults_valid(self) -> None:
        assert ConfigManager.validate(SystemConfig()) == []

    def test_unknown_provider(self) -> None:
        cfg = ConfigManager.merge_env_vars(SystemConfig(), {"AI_PROVIDER": "claude"})
        issues = ConfigManager.validate(cfg)
        assert any("llm.provider 'claude'" in i for i in issues)

    def test_empty_model_and_unregistered_backend(self) -> None:
        cfg = SystemConfig.model_validate(
            {"llm": {"backends": {"gemini": {"model": "", "url": "u"}, "mistral": {"model": "m", "url": "u"}}}}
        )
        issues = ConfigManager.validate(cfg)
        assert "llm.backends.gemini.model must not be empty" in issues
        assert "llm.backends.mistral has no registered backend" in issues

    @pytest.mark.parametrize(
        "url",
        [
            "https://g.test/v1beta/models/{model}:generateContent",
            "https://g.test/v1beta/models/%s:generateContent",
        ],
    )
    def test_gemini_url_placeholder_forms(self, url: str) -> None:
        cfg = ConfigManager.merge_env_vars(SystemConfig(), {"GEMINI_URL": url})
        assert ConfigManager.validate(cfg) == []

    def test_gemini_url_without_model_placeholder(self) -> None:
        cfg = ConfigManager.merge_env_vars(
            SystemConfig(), {"GEMINI_URL": "https://g.test/v1beta/models/gemini-pro:generateContent"}
        )
        issues = ConfigManager.validate(cfg)
        assert issues == ["llm.backends.gemini.url must contain {model} or %s for the model name"]


# ── credential resolution ──────────────────────────────────────────


class TestToAnalyzerConfig:
    def test_keys_from_environment(self) -> None:
        analyzer_cfg = ConfigManager.to_analyzer_config(
            SystemConfig(), {"GROQ_API_KEY": "gsk_1", "OPENAI_API_KEY": " "}
        )
        assert analyzer_cfg.backends["groq"].has_credential is True
        assert analyzer_cfg.backends["openai"].has_credential is False
        assert analyzer_cfg.any_credential() is True

    def test_custom_key_variable(self) -> None:
        cfg = SystemConfig.model_validate(
            {"llm": {"provider": "groq", "backends": {"groq": {
                "model": "m", "url": "u", "api_key_env_var": "MY_GROQ_TOKEN",
            }}}}
        )
        analyzer_cfg = ConfigManager.to_analyzer_config(cfg, {"MY_GROQ_TOKEN": "t"})
        assert analyzer_cfg.selected_backend().api_key == "t"

    def test_settings_carried(self) -> None:
        analyzer_cfg = ConfigManager.to_analyzer_config(SystemConfig(), {})
        gemini = analyzer_cfg.backends["gemini"]
        assert gemini.model == "gemini-2.0-flash"
        assert gemini.url.endswith("/models/{model}:generateContent")
        assert analyzer_cfg.provider == "gemini"


# ── helpers ────────────────────────────────────────────────────────


class TestDeepMerge:
    def test_nested(self) -> None:
        base = {"a": {"b": 1, "c": 2}, "d": 3}
        _deep_merge(base, {"a": {"b": 9}})
        assert base == {"a": {"b": 9, "c": 2}, "d": 3}

    def test_replaces_non_dict(self) -> None:
        base = {"a": 1}
        _deep_merge(base, {"a": {"x": 1}})
        assert base == {"a": {"x": 1}}
