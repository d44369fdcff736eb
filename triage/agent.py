"""
File: agent.py
Purpose: IncidentAnalyzer — the orchestration layer.
Dependencies: All submodules.
Performance: <5ms without the backend; one backend round-trip otherwise.

Pipeline:
  1. Refuse to run when no backend has a credential (ConfigurationError)
  2. Preprocess the raw log lines
  3. Ask the Advisor for a suggestion (never raises)
  4. Let the DecisionEngine accept, override or attenuate it
  5. Return AnalysisResult

Entry point::

    analyzer = IncidentAnalyzer(config)
    result = analyzer.analyze(lines, MetricSample(cpu=85, db_latency=400))
"""

from __future__ import annotations

from typing import Iterable, Optional

from triage.config import AnalyzerConfig
from triage.core.decision_engine import DecisionEngine
from triage.core.preprocessor import preprocess
from triage.errors import ConfigurationError
from triage.llm.advisor import Advisor
from triage.llm.backends import TextBackend
from triage.schema import AnalysisResult, MetricSample
from triage.telemetry import TelemetryCollector, get_logger

logger = get_logger("triage.agent")


class IncidentAnalyzer:
    """Incident triage pipeline: preprocess → advise → decide.

    The three stages run strictly in sequence and share no mutable
    state between requests, so one analyzer may serve many callers.

    Args:
        config: Analyzer configuration with credentials resolved.
        backend: Optional pre-built backend (bypasses credential lookup
            for the selected provider).
        telemetry: Optional telemetry collector; a private one is
            created when omitted.

    Example::

        analyzer = IncidentAnalyzer(AnalyzerConfig(provider="groq", backends=...))
        result = analyzer.analyze(["12:00 DB timeout"], MetricSample(db_latency=400))
        print(result.verdict.likely_cause, result.verdict.confidence)
    """

    def __init__(
        self,
        config: AnalyzerConfig,
        backend: Optional[TextBackend] = None,
        telemetry: Optional[TelemetryCollector] = None,
    ) -> None:
        self._config = config
        self._has_injected_backend = backend is not None
        self._telemetry = telemetry or TelemetryCollector()
        self._advisor = Advisor(config, backend=backend, telemetry=self._telemetry)
        self._engine = DecisionEngine(telemetry=self._telemetry)

    @property
    def telemetry(self) -> TelemetryCollector:
        return self._telemetry

    @property
    def provider(self) -> str:
        return self._advisor.provider

    def close(self) -> None:
        """Release the HTTP/SDK client of a backend created from config."""
        self._advisor.close()

    def __enter__(self) -> "IncidentAnalyzer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def analyze(
        self,
        logs: Iterable[str],
        metrics: Optional[MetricSample] = None,
        correlation_id: str = "",
    ) -> AnalysisResult:
        """Run the full pipeline for one request.

        Args:
            logs: Raw log lines, in arrival order.
            metrics: Metric sample for this request.
            correlation_id: Request correlation ID.

        Returns:
            AnalysisResult carrying the final Verdict.

        Raises:
            ConfigurationError: If no backend has a credential configured.
        """
        if not self._has_injected_backend and not self._config.any_credential():
            self._telemetry.record_analysis("config_error")
            names = ", ".join(self._config.credential_env_vars())
            logger.error(
                "No backend credential configured",
                extra={"correlation_id": correlation_id, "layer": "pipeline"},
            )
            raise ConfigurationError(
                f"No AI backend is configured. Set one of: {names}."
            )

        with self._telemetry.measure("pipeline_total"):
            with self._telemetry.measure("preprocess"):
                preprocessed = preprocess(list(logs))

            logger.info(
                f"Preprocessed {preprocessed.summary.total_original} lines -> "
                f"{preprocessed.summary.after_dedup} entries in "
                f"{preprocessed.summary.distinct_windows} windows",
                extra={"correlation_id": correlation_id, "layer": "preprocess"},
            )

            with self._telemetry.measure("advisor"):
                suggestion = self._advisor.suggest(preprocessed, metrics, correlation_id)

            with self._telemetry.measure("decision"):
                decision = self._engine.decide(
                    suggestion, preprocessed, metrics, correlation_id
                )

        if not decision.incident:
            outcome = "no_incident"
        elif suggestion.degraded:
            outcome = "degraded"
        else:
            outcome = "ok"
        self._telemetry.record_analysis(outcome)

        logger.info(
            f"Verdict: {decision.verdict.likely_cause[:60]} "
            f"({decision.verdict.confidence:.2f}) outcome={outcome}",
            extra={"correlation_id": correlation_id, "layer": "pipeline"},
        )

        return AnalysisResult(
            verdict=decision.verdict,
            provider=self.provider,
            signal=decision.signal,
            degraded=suggestion.degraded,
            summary=preprocessed.summary,
            correlation_id=correlation_id,
        )
