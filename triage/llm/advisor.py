"""
File: llm/advisor.py
Purpose: Ask the configured backend for a root-cause suggestion.
Dependencies: context_builder, backends, response_parser, grounding, error_taxonomy.
Performance: Dominated by one backend round-trip.

``Advisor.suggest`` never raises.  Every failure (no credential, unknown
provider, HTTP error, unparseable output) is turned into a degraded,
zero-confidence Suggestion by :mod:`triage.llm.error_taxonomy`.
"""

from __future__ import annotations

from typing import Optional

from triage.config import AnalyzerConfig
from triage.errors import BackendUnavailable
from triage.llm.backends import BACKENDS, TextBackend, create_backend
from triage.llm.context_builder import SYSTEM_PROMPT, build_smart_context, build_user_prompt
from triage.llm.error_taxonomy import missing_credential, service_unavailable, unknown_provider
from triage.llm.grounding import ground_and_sanitize
from triage.llm.response_parser import parse_suggestion
from triage.schema import MetricSample, PreprocessResult, Suggestion
from triage.telemetry import TelemetryCollector, get_logger

logger = get_logger("triage.llm.advisor")


class Advisor:
    """Produces one grounded Suggestion per request.

    Args:
        config: Analyzer configuration (selected provider + backends).
        backend: Optional pre-built backend; overrides the one that
            would be created from ``config``.
        telemetry: Optional telemetry collector.

    Example::

        advisor = Advisor(AnalyzerConfig(provider="groq", backends={...}))
        suggestion = advisor.suggest(preprocess(lines), MetricSample(cpu=91))
    """

    def __init__(
        self,
        config: AnalyzerConfig,
        backend: Optional[TextBackend] = None,
        telemetry: Optional[TelemetryCollector] = None,
    ) -> None:
        self._config = config
        self._telemetry = telemetry
        self._backend = backend
        self._owns_backend = False

        selected = config.selected_backend()
        if (
            self._backend is None
            and selected is not None
            and selected.has_credential
            and selected.name in BACKENDS
        ):
            self._backend = create_backend(selected, telemetry=telemetry)
            self._owns_backend = True

    def close(self) -> None:
        """Close the backend if this advisor created it."""
        if self._owns_backend and self._backend is not None:
            self._backend.close()

    @property
    def provider(self) -> str:
        return self._config.provider.strip().lower()

    def suggest(
        self,
        preprocessed: PreprocessResult,
        metrics: Optional[MetricSample] = None,
        correlation_id: str = "",
    ) -> Suggestion:
        provider = self.provider

        if self._backend is None:
            selected = self._config.selected_backend()
            if selected is None or provider not in BACKENDS:
                logger.warning(
                    f"Unknown provider '{provider}'",
                    extra={"correlation_id": correlation_id, "layer": "advisor"},
                )
                return unknown_provider(provider)
            logger.warning(
                f"No credential for provider '{provider}'",
                extra={"correlation_id": correlation_id, "layer": "advisor"},
            )
            return missing_credential(provider)

        context = build_smart_context(preprocessed, metrics)
        user_prompt = build_user_prompt(context)

        try:
            text = self._backend.generate(SYSTEM_PROMPT, user_prompt)
            payload = parse_suggestion(text)
        except BackendUnavailable as exc:
            logger.warning(
                f"Backend '{provider}' unavailable (status={exc.status})",
                extra={
                    "correlation_id": correlation_id,
                    "layer": "advisor",
                    "context": {"detail": exc.detail[:300]},
                },
            )
            if self._telemetry:
                self._telemetry.record_backend_call(provider, success=False)
            return service_unavailable(exc.status, exc.detail, provider)

        if self._telemetry:
            self._telemetry.record_backend_call(provider, success=True)

        suggestion, penalized = ground_and_sanitize(payload, preprocessed, backend=provider)
        if penalized:
            logger.info(
                f"Cause '{suggestion.likely_cause[:60]}' not grounded in logs; "
                f"confidence lowered to {suggestion.confidence:.2f}",
                extra={"correlation_id": correlation_id, "layer": "advisor"},
            )
            if self._telemetry:
                self._telemetry.hallucination_penalties.inc()

        logger.info(
            f"Suggestion from {provider}: {suggestion.likely_cause[:60]} "
            f"({suggestion.confidence:.2f}), {context.lines_included} log lines sent",
            extra={"correlation_id": correlation_id, "layer": "advisor"},
        )
        return suggestion
