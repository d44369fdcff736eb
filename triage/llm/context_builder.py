"""
File: llm/context_builder.py
Purpose: Size-bounded "smart context" and the prompts sent to the backend.
Dependencies: Schema models only.
Performance: O(n) over preprocessed entries.

Selection favours severity: every critical and high entry, then the
first 15 medium and first 10 low, capped at 50 lines and 4000 characters.
Rendering stops at the first line that would overflow the character
budget; later (shorter) lines are not squeezed in.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from triage.schema import (
    Entry,
    MetricSample,
    PreprocessResult,
    PreprocessSummary,
    Severity,
)

MAX_LOG_LINES = 50
MAX_LOG_CHARS = 4000
MEDIUM_QUOTA = 15
LOW_QUOTA = 10

SYSTEM_PROMPT = (
    "You are an incident analyst. Given cleaned log entries and system metrics, "
    "identify the ONE most likely root cause, give brief reasoning and one "
    "concrete next step. Respond only with a JSON object: "
    '{"likely_cause": "...", "reasoning": "...", "next_steps": "...", '
    '"confidence": 0.0-1.0}. Base your answer only on evidence in the logs and '
    "metrics. Never invent causes the data does not support."
)


class SmartContext(BaseModel):
    """Rendered log block paired with metrics and the preprocessing summary."""

    model_config = ConfigDict(frozen=True)

    log_block: str = ""
    lines_included: int = 0
    metrics: MetricSample = Field(default_factory=MetricSample)
    summary: PreprocessSummary = Field(default_factory=PreprocessSummary)


def select_entries(entries: List[Entry]) -> List[Entry]:
    """Pick entries by severity priority, capped at ``MAX_LOG_LINES``."""
    by_severity: Dict[Severity, List[Entry]] = {level: [] for level in Severity}
    for entry in entries:
        by_severity[entry.severity].append(entry)

    selected = (
        by_severity[Severity.CRITICAL]
        + by_severity[Severity.HIGH]
        + by_severity[Severity.MEDIUM][:MEDIUM_QUOTA]
        + by_severity[Severity.LOW][:LOW_QUOTA]
    )
    return selected[:MAX_LOG_LINES]


def render_entry(entry: Entry) -> str:
    return f"[{entry.window}] {entry.severity.value}: {entry.raw}\n"


def build_smart_context(
    preprocessed: PreprocessResult,
    metrics: Optional[MetricSample] = None,
) -> SmartContext:
    """Build the bounded context for one request.

    Args:
        preprocessed: Output of the preprocessor.
        metrics: Metric sample for the request (may be None).

    Returns:
        SmartContext whose ``log_block`` is at most ``MAX_LOG_CHARS`` long.
    """
    block = ""
    included = 0
    for entry in select_entries(preprocessed.entries):
        line = render_entry(entry)
        if len(block) + len(line) > MAX_LOG_CHARS:
            break
        block += line
        included += 1

    return SmartContext(
        log_block=block,
        lines_included=included,
        metrics=metrics or MetricSample(),
        summary=preprocessed.summary,
    )


def _fmt(value: Optional[object]) -> str:
    if value is None or value == "":
        return "N/A"
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def format_metrics(metrics: MetricSample) -> str:
    """One-line metric summary, ``N/A`` for missing values."""
    return (
        f"CPU: {_fmt(metrics.cpu)}%, "
        f"DB latency: {_fmt(metrics.db_latency)} ms, "
        f"Requests/sec: {_fmt(metrics.requests_per_sec)}"
    )


def build_user_prompt(context: SmartContext) -> str:
    return (
        "Cleaned logs (deduplicated, grouped by time window, severity marked):\n\n"
        f"{context.log_block}"
        f"\n\nMetrics: {format_metrics(context.metrics)}"
        "\n\nSuggest the probable root cause and reasoning. Respond with JSON only: "
        "likely_cause, reasoning, next_steps, confidence (0-1)."
    )
