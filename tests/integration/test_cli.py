"""Tests for the Click CLI (main.py) via CliRunner."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from main import cli
from triage.errors import BackendUnavailable
from triage.tests.conftest import StubBackend

_CREDENTIAL_VARS = (
    "GEMINI_API_KEY", "OPENAI_API_KEY", "GROK_API_KEY", "GROQ_API_KEY",
    "AI_PROVIDER", "TRIAGE_LOG_LEVEL", "TRIAGE_CONFIG",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in _CREDENTIAL_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def config_yaml(tmp_path: Path) -> str:
    """Write a minimal valid config YAML and return its path."""
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        "system:\n  log_level: WARNING\n"
        "llm:\n  provider: groq\n",
        encoding="utf-8",
    )
    return str(cfg)


@pytest.fixture()
def log_file(tmp_path: Path) -> str:
    path = tmp_path / "app.log"
    path.write_text(
        "12:00 DB timeout\n12:01 DB timeout\n\n12:02 DB connection reset\n",
        encoding="utf-8",
    )
    return str(path)


def _stub(reply: str):
    return patch("triage.llm.advisor.create_backend", return_value=StubBackend(reply))


_GROQ = {"GROQ_API_KEY": "gsk_test"}


# ── Root group ─────────────────────────────────────────────────────


class TestCLIGroup:
    def test_help_flag(self, runner: CliRunner, config_yaml: str) -> None:
        result = runner.invoke(cli, ["--config", config_yaml, "--help"])
        assert result.exit_code == 0
        assert "Incident Triage" in result.output

    def test_no_subcommand_shows_help(self, runner: CliRunner, config_yaml: str) -> None:
        result = runner.invoke(cli, ["--config", config_yaml])
        assert result.exit_code == 0
        assert "Usage" in result.output

    def test_version_option(self, runner: CliRunner, config_yaml: str) -> None:
        result = runner.invoke(cli, ["--config", config_yaml, "--version"])
        assert result.exit_code == 0
        assert "1.0.0" in result.output


# ── analyze ────────────────────────────────────────────────────────


class TestAnalyzeCommand:
    def test_json_output(self, runner: CliRunner, config_yaml: str, log_file: str) -> None:
        reply = json.dumps({"likely_cause": "Disk pressure on node-3", "confidence": 0.6})
        with _stub(reply):
            result = runner.invoke(
                cli,
                ["--config", config_yaml, "analyze", "--logs", log_file,
                 "--cpu", "85", "--db-latency", "400", "--rps", "High", "--json"],
                env=_GROQ,
            )
        assert result.exit_code == 0, result.stderr
        data = json.loads(result.stdout)
        assert data["verdict"]["likely_cause"] == "Database timeout or overload"
        assert data["verdict"]["confidence"] == 0.9
        assert data["provider"] == "groq"
        assert data["signal"] == "db_timeout"
        assert data["summary"]["total_original"] == 3
        assert data["correlation_id"]

    def test_lines_from_options_and_stdin(self, runner: CliRunner, config_yaml: str) -> None:
        reply = json.dumps({"likely_cause": "Unknown", "confidence": 0.5})
        with _stub(reply):
            result = runner.invoke(
                cli,
                ["--config", config_yaml, "analyze", "--logs", "-", "-l", "404 Not Found for /foo", "--json"],
                input="User requested /foo\n",
                env=_GROQ,
            )
        assert result.exit_code == 0, result.stderr
        data = json.loads(result.stdout)
        assert data["verdict"]["likely_cause"] == "Resource not found (404)"
        assert data["summary"]["total_original"] == 2

    def test_panel_output(self, runner: CliRunner, config_yaml: str) -> None:
        with _stub(json.dumps({"likely_cause": "db timeout", "confidence": 0.7})):
            result = runner.invoke(
                cli, ["--config", config_yaml, "analyze", "-l", "12:00 DB timeout"], env=_GROQ
            )
        assert result.exit_code == 0
        assert "Root Cause" in result.stderr
        assert result.stdout == ""

    def test_backend_closed_after_run(self, runner: CliRunner, config_yaml: str) -> None:
        stub = StubBackend(json.dumps({"likely_cause": "db timeout", "confidence": 0.7}))
        with patch("triage.llm.advisor.create_backend", return_value=stub):
            result = runner.invoke(
                cli, ["--config", config_yaml, "analyze", "-l", "12:00 DB timeout", "--json"], env=_GROQ
            )
        assert result.exit_code == 0
        assert stub.closed is True

    def test_degraded_backend(self, runner: CliRunner, config_yaml: str) -> None:
        with patch(
            "triage.llm.advisor.create_backend",
            return_value=StubBackend(BackendUnavailable(500, "boom")),
        ):
            result = runner.invoke(
                cli, ["--config", config_yaml, "analyze", "-l", "12:00 DB timeout", "--json"], env=_GROQ
            )
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["degraded"] is True
        assert data["verdict"]["likely_cause"] == "Database timeout or overload"

    def test_no_credentials_exit_3(self, runner: CliRunner, config_yaml: str) -> None:
        result = runner.invoke(cli, ["--config", config_yaml, "analyze", "-l", "12:00 DB timeout"])
        assert result.exit_code == 3
        assert "GROQ_API_KEY" in result.stderr

    def test_no_lines_exit_1(self, runner: CliRunner, config_yaml: str) -> None:
        result = runner.invoke(cli, ["--config", config_yaml, "analyze"], env=_GROQ)
        assert result.exit_code == 1

    @pytest.mark.parametrize("args", [["--cpu", "120"], ["--db-latency=-5"]])
    def test_invalid_metrics_exit_1(self, runner: CliRunner, config_yaml: str, args) -> None:
        result = runner.invoke(
            cli, ["--config", config_yaml, "analyze", "-l", "error", *args], env=_GROQ
        )
        assert result.exit_code == 1


# ── providers ──────────────────────────────────────────────────────


class TestProvidersCommand:
    def test_lists_backends(self, runner: CliRunner, config_yaml: str) -> None:
        result = runner.invoke(cli, ["--config", config_yaml, "providers"], env=_GROQ)
        assert result.exit_code == 0
        for name in ("gemini", "openai", "grok", "groq"):
            assert name in result.stderr
        assert "GEMINI_API_KEY" in result.stderr


# ── validate ───────────────────────────────────────────────────────


class TestValidateCommand:
    def test_validate_valid_config(self, runner: CliRunner, config_yaml: str) -> None:
        result = runner.invoke(cli, ["--config", config_yaml, "validate"])
        assert result.exit_code == 0
        assert "valid" in result.stderr.lower()

    def test_validate_missing_file(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--config", "/no/such/file.yaml", "validate"])
        # missing file → defaults, which are valid
        assert result.exit_code == 0

    def test_validate_unknown_provider(self, runner: CliRunner, config_yaml: str) -> None:
        result = runner.invoke(
            cli, ["--config", config_yaml, "validate"], env={"AI_PROVIDER": "claude"}
        )
        assert result.exit_code == 1
        assert "claude" in result.stderr

    def test_validate_bad_yaml(self, runner: CliRunner, tmp_path: Path) -> None:
        bad = tmp_path / "bad.yaml"
        bad.write_text("system:\n  log_level: LOUD\n", encoding="utf-8")
        result = runner.invoke(cli, ["--config", str(bad), "validate"])
        assert result.exit_code == 1


# ── version ────────────────────────────────────────────────────────


class TestVersionCommand:
    def test_version(self, runner: CliRunner, config_yaml: str) -> None:
        result = runner.invoke(cli, ["--config", config_yaml, "version"])
        assert result.exit_code == 0
        assert "1.0.0" in result.stderr
