"""
File: schema.py
Purpose: Type-safe Pydantic v2 schemas for the triage pipeline.
Dependencies: pydantic >=2.0
Performance: Schema validation <1ms per object

Defines the data contracts passed between the three stages:
preprocessing, advisor suggestion and final verdict.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ═══════════════════════════════════════════════════════════════
#  ENUMS
# ═══════════════════════════════════════════════════════════════


class Severity(str, Enum):
    """Severity assigned to a log entry, highest first."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


UNKNOWN_WINDOW = "unknown"
DEFAULT_NEXT_STEPS = "Review logs and metrics."
UNKNOWN_CAUSE = "Unknown"

_WINDOW_RE = re.compile(r"^(unknown|window_\d+)$")


def clamp_confidence(value: float) -> float:
    """Clamp *value* into [0, 1]."""
    return max(0.0, min(1.0, float(value)))


# ═══════════════════════════════════════════════════════════════
#  PREPROCESSING
# ═══════════════════════════════════════════════════════════════


class Entry(BaseModel):
    """One normalized, deduplicated log line.

    Attributes:
        raw: Trimmed log line.
        time: First time-of-day token found in the line (``HH:MM`` or
            ``HH:MM:SS``), or None.
        window: ``window_N`` 5-minute bucket label, or ``unknown``.
        severity: Keyword-derived severity.
    """

    model_config = ConfigDict(frozen=True)

    raw: str
    time: Optional[str] = None
    window: str = UNKNOWN_WINDOW
    severity: Severity = Severity.LOW

    @field_validator("window")
    @classmethod
    def _validate_window(cls, v: str) -> str:
        if not _WINDOW_RE.match(v):
            raise ValueError(f"window must be 'unknown' or 'window_N', got '{v}'")
        return v


class PreprocessSummary(BaseModel):
    """Counts describing one preprocessing run."""

    model_config = ConfigDict(frozen=True)

    total_original: int = Field(default=0, ge=0)
    after_dedup: int = Field(default=0, ge=0)
    distinct_windows: int = Field(default=0, ge=0)


class PreprocessResult(BaseModel):
    """Entries in first-occurrence order plus a summary."""

    model_config = ConfigDict(frozen=True)

    entries: List[Entry] = Field(default_factory=list)
    summary: PreprocessSummary = Field(default_factory=PreprocessSummary)

    def log_text(self) -> str:
        """All raw lines joined by spaces, lowercased."""
        return " ".join(e.raw for e in self.entries).lower()

    def count_at_least_high(self) -> int:
        return sum(
            1 for e in self.entries
            if e.severity in (Severity.CRITICAL, Severity.HIGH)
        )


# ═══════════════════════════════════════════════════════════════
#  METRICS
# ═══════════════════════════════════════════════════════════════


class MetricSample(BaseModel):
    """System metrics attached to one request. Every field is optional.

    Attributes:
        cpu: CPU utilisation percentage, 0-100.
        db_latency: Database latency in milliseconds.
        requests_per_sec: Free-form load label, e.g. ``"High"``.
    """

    model_config = ConfigDict(frozen=True)

    cpu: Optional[float] = Field(default=None, ge=0, le=100)
    db_latency: Optional[float] = Field(default=None, ge=0)
    requests_per_sec: Optional[str] = Field(default=None, max_length=64)


class MetricSignals(BaseModel):
    """Boolean threshold crossings derived from a MetricSample."""

    model_config = ConfigDict(frozen=True)

    db_latency_high: bool = False
    cpu_high: bool = False
    requests_high: bool = False


# ═══════════════════════════════════════════════════════════════
#  ADVISOR / DECISION OUTPUTS
# ═══════════════════════════════════════════════════════════════


class Suggestion(BaseModel):
    """The backend's grounded answer, or a ServiceUnavailable stand-in.

    Attributes:
        likely_cause: One-line probable root cause.
        reasoning: Short justification.
        next_steps: Remediation guidance.
        confidence: 0.0-1.0, already grounded.
        backend: Backend that produced it.
        degraded: True when the backend could not deliver an answer.
    """

    model_config = ConfigDict(frozen=True)

    likely_cause: str = UNKNOWN_CAUSE
    reasoning: str = ""
    next_steps: str = DEFAULT_NEXT_STEPS
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    backend: str = ""
    degraded: bool = False


class Verdict(BaseModel):
    """Final, authoritative answer for one request."""

    model_config = ConfigDict(frozen=True)

    likely_cause: str
    confidence: float = Field(ge=0.0, le=1.0)
    next_steps: str


class AnalysisResult(BaseModel):
    """Verdict plus the bookkeeping the caller needs to report it.

    Attributes:
        verdict: Final verdict.
        provider: Configured backend id.
        signal: Log-grounded signal that overrode the suggestion, if any.
        degraded: True when the backend could not be used.
        summary: Preprocessing counts.
        correlation_id: Request correlation ID.
    """

    verdict: Verdict
    provider: str = ""
    signal: Optional[str] = None
    degraded: bool = False
    summary: PreprocessSummary = Field(default_factory=PreprocessSummary)
    correlation_id: str = ""
