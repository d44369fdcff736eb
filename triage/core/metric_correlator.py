"""
File: core/metric_correlator.py
Purpose: Metric threshold signals, confidence correlation, next-step refinement.
Dependencies: Schema models only.
Performance: <1ms, pure functions.

Metrics never change the cause; they only corroborate it.  A cause
keyword listed in ``METRIC_CORRELATIONS`` earns +0.08 for each of its
metric signals that fired; several keywords stack independently.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence, Tuple

from triage.schema import (
    DEFAULT_NEXT_STEPS,
    MetricSample,
    MetricSignals,
    PreprocessResult,
    clamp_confidence,
)

DB_LATENCY_HIGH_MS = 300
CPU_HIGH_PCT = 80
HIGH_REQUEST_LABELS = ("high", "very high", "spike")

CORRELATION_BOOST = 0.08
SEVERITY_BOOST = 0.05
SEVERITY_BOOST_MAX_ENTRIES = 3

METRIC_CORRELATIONS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("database", ("db_latency_high", "cpu_high")),
    ("db", ("db_latency_high", "cpu_high")),
    ("connection", ("db_latency_high",)),
    ("network", ("db_latency_high",)),
    ("timeout", ("db_latency_high", "cpu_high")),
    ("overload", ("cpu_high", "requests_high")),
    ("cpu", ("cpu_high",)),
    ("memory", ("cpu_high",)),
)


def extract_metric_signals(metrics: Optional[MetricSample]) -> MetricSignals:
    """Derive threshold signals; missing values never fire."""
    if metrics is None:
        return MetricSignals()

    requests = (metrics.requests_per_sec or "").strip().lower()
    return MetricSignals(
        db_latency_high=metrics.db_latency is not None and metrics.db_latency > DB_LATENCY_HIGH_MS,
        cpu_high=metrics.cpu is not None and metrics.cpu >= CPU_HIGH_PCT,
        requests_high=requests in HIGH_REQUEST_LABELS,
    )


def adjust_confidence(
    cause: str,
    base: float,
    signals: MetricSignals,
    preprocessed: PreprocessResult,
) -> float:
    """Correlate the cause with metrics and log severity.

    Args:
        cause: Sanitized suggestion cause.
        base: Suggestion confidence.
        signals: Metric threshold signals.
        preprocessed: Preprocessed logs (for the severity boost).

    Returns:
        Confidence clamped to [0, 1] and rounded to 2 decimals.
    """
    lower = cause.lower()
    fired: Dict[str, bool] = signals.model_dump()

    boost = 0.0
    for keyword, signal_names in METRIC_CORRELATIONS:
        if keyword not in lower:
            continue
        boost += CORRELATION_BOOST * sum(1 for name in signal_names if fired[name])

    severe = min(preprocessed.count_at_least_high(), SEVERITY_BOOST_MAX_ENTRIES)
    boost += SEVERITY_BOOST * severe

    return round(clamp_confidence(base + boost), 2)


def _sentence_key(sentence: str) -> str:
    key = sentence.strip().lower().rstrip(".!?;:, \t")
    return re.sub(r"\s+", " ", key)


def deduplicate_sentences(sentences: Sequence[str]) -> List[str]:
    """Drop duplicates and sentences contained in (or containing) a kept one.

    Comparison is on a normalized key; the first kept sentence wins.
    """
    kept_keys: List[str] = []
    result: List[str] = []

    for sentence in sentences:
        key = _sentence_key(sentence)
        if not key or key in kept_keys:
            continue
        if any(key in existing or existing in key for existing in kept_keys):
            continue
        kept_keys.append(key)
        result.append(sentence.strip())

    return result


def refine_next_steps(cause: str, suggested: str, signals: MetricSignals) -> str:
    """Combine metric-driven hints with the suggestion's own next steps."""
    lower = cause.lower()
    hints: List[str] = []

    if any(k in lower for k in ("database", "db", "connection")):
        hints.append("Check connection pool and DB health.")
        if signals.db_latency_high:
            hints.append("Review slow queries and indexes.")
    if "timeout" in lower and signals.db_latency_high:
        hints.append("Consider increasing timeout or scaling DB.")
    if ("cpu" in lower or "overload" in lower) and signals.cpu_high:
        hints.append("Profile CPU and consider scaling or optimization.")

    suggested = suggested.strip()
    if suggested and suggested != DEFAULT_NEXT_STEPS:
        hints.append(suggested)

    combined = " ".join(deduplicate_sentences(hints)) if hints else suggested
    return combined or DEFAULT_NEXT_STEPS
