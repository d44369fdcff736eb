"""
File: core/decision_engine.py
Purpose: Final verdict — log evidence first, suggestion second, metrics last.
Dependencies: signal_detector, metric_correlator, schema.
Performance: <1ms, stateless per request.

Decision order::

    no-incident gate ──► terminal "No clear incident" verdict
    log-grounded signal disagreeing with the suggestion ──► override
    otherwise ──► suggestion cause + metric-correlated confidence
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from triage.core.metric_correlator import (
    adjust_confidence,
    extract_metric_signals,
    refine_next_steps,
)
from triage.core.signal_detector import describes_incident, detect_log_signal
from triage.schema import (
    UNKNOWN_CAUSE,
    MetricSample,
    PreprocessResult,
    Suggestion,
    Verdict,
)
from triage.telemetry import TelemetryCollector, get_logger

logger = get_logger("triage.decision_engine")

NO_INCIDENT_VERDICT = Verdict(
    likely_cause="No clear incident from logs",
    confidence=0.25,
    next_steps=(
        "Provide error logs or incident-related messages for analysis. "
        "Current input does not describe a failure or incident."
    ),
)

OVERRIDE_CONFIDENCE = 0.85
OVERRIDE_METRIC_BONUS = 0.05
OVERRIDE_CAP = 0.98


@dataclass(frozen=True)
class Decision:
    """Verdict plus which path produced it."""
    verdict: Verdict
    signal: Optional[str] = None
    incident: bool = True


class DecisionEngine:
    """Accepts, overrides or attenuates an advisor suggestion.

    Args:
        telemetry: Optional telemetry collector.

    Example::

        engine = DecisionEngine()
        decision = engine.decide(suggestion, preprocessed, MetricSample(cpu=85))
        decision.verdict.likely_cause
    """

    def __init__(self, telemetry: Optional[TelemetryCollector] = None) -> None:
        self._telemetry = telemetry

    def decide(
        self,
        suggestion: Suggestion,
        preprocessed: PreprocessResult,
        metrics: Optional[MetricSample] = None,
        correlation_id: str = "",
    ) -> Decision:
        log_text = preprocessed.log_text()

        if not describes_incident(log_text):
            logger.info(
                "Logs do not describe an incident",
                extra={"correlation_id": correlation_id, "layer": "decision"},
            )
            return Decision(verdict=NO_INCIDENT_VERDICT, incident=False)

        cause = suggestion.likely_cause.strip() or UNKNOWN_CAUSE
        signals = extract_metric_signals(metrics)
        log_signal = detect_log_signal(log_text)

        if log_signal is not None and not log_signal.agrees_with(cause):
            bonus = OVERRIDE_METRIC_BONUS if (signals.db_latency_high or signals.cpu_high) else 0.0
            confidence = round(min(OVERRIDE_CAP, OVERRIDE_CONFIDENCE + bonus), 2)

            logger.info(
                f"Log signal '{log_signal.name}' overrides suggestion '{cause[:60]}'",
                extra={"correlation_id": correlation_id, "layer": "decision"},
            )
            if self._telemetry:
                self._telemetry.record_override(log_signal.name)

            return Decision(
                verdict=Verdict(
                    likely_cause=log_signal.cause,
                    confidence=confidence,
                    next_steps=log_signal.next_steps,
                ),
                signal=log_signal.name,
            )

        verdict = Verdict(
            likely_cause=cause,
            confidence=adjust_confidence(cause, suggestion.confidence, signals, preprocessed),
            next_steps=refine_next_steps(cause, suggestion.next_steps, signals),
        )
        logger.debug(
            f"Suggestion accepted: conf {suggestion.confidence:.2f} -> {verdict.confidence:.2f}",
            extra={"correlation_id": correlation_id, "layer": "decision"},
        )
        return Decision(verdict=verdict)
