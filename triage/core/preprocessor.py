"""
File: core/preprocessor.py
Purpose: Normalize, dedupe, time-window and severity-classify log lines.
Dependencies: Schema models only.
Performance: O(n × k) where n = lines, k = severity keywords.

Pure function: no I/O, no failure modes.  Empty input yields an
empty result with zero windows.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence, Tuple

from triage.schema import (
    UNKNOWN_WINDOW,
    Entry,
    PreprocessResult,
    PreprocessSummary,
    Severity,
)

WINDOW_MINUTES = 5

# First time-of-day token: H:MM, HH:MM, optionally :SS.
_TIME_RE = re.compile(r"\b(\d{1,2}:\d{2}(?::\d{2})?)\b")

# Ranked highest first; the first level with any hit wins.
SEVERITY_KEYWORDS: Tuple[Tuple[Severity, Tuple[str, ...]], ...] = (
    (Severity.CRITICAL, ("fatal", "panic", "critical", "outage")),
    (Severity.HIGH, ("error", "exception", "timeout", "reset", "failed", "refused")),
    (Severity.MEDIUM, ("warn", "warning", "degraded", "slow")),
    (Severity.LOW, ("info", "debug")),
)


def normalize_and_dedupe(lines: Iterable[str]) -> List[str]:
    """Trim lines, drop empties, keep the first occurrence of each."""
    seen = set()
    result: List[str] = []
    for line in lines:
        trimmed = str(line).strip()
        if not trimmed or trimmed in seen:
            continue
        seen.add(trimmed)
        result.append(trimmed)
    return result


def extract_time(line: str) -> Optional[str]:
    match = _TIME_RE.search(line)
    return match.group(1) if match else None


def window_label(time_token: Optional[str]) -> str:
    """Map ``HH:MM[:SS]`` to its 5-minute bucket label.

    Seconds are ignored, so ``12:04:59`` and ``12:00`` share a bucket.
    """
    if time_token is None:
        return UNKNOWN_WINDOW
    parts = [int(p) for p in time_token.split(":")]
    minutes = parts[0] * 60 + parts[1]
    return f"window_{minutes // WINDOW_MINUTES}"


def classify_severity(line: str) -> Severity:
    lower = line.lower()
    for level, keywords in SEVERITY_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return level
    return Severity.LOW


def preprocess(lines: Sequence[str]) -> PreprocessResult:
    """Preprocess raw log lines for analysis.

    Args:
        lines: Raw log lines, e.g. ``["12:00 DB timeout", ...]``.

    Returns:
        PreprocessResult with entries in first-occurrence order.

    Example::

        result = preprocess(["12:00 DB timeout", "12:00 DB timeout"])
        result.summary.after_dedup  # 1
        result.entries[0].window    # "window_144"
    """
    normalized = normalize_and_dedupe(lines)

    entries: List[Entry] = []
    for raw in normalized:
        time_token = extract_time(raw)
        entries.append(
            Entry(
                raw=raw,
                time=time_token,
                window=window_label(time_token),
                severity=classify_severity(raw),
            )
        )

    summary = PreprocessSummary(
        total_original=len(lines),
        after_dedup=len(entries),
        distinct_windows=len({e.window for e in entries}),
    )
    return PreprocessResult(entries=entries, summary=summary)
