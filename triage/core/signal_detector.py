"""
File: core/signal_detector.py
Purpose: Detect log-grounded incident signals and non-incident input.
Dependencies: Standard library only.
Performance: <1ms, O(k) substring scans over the combined log text.

Both rule sets are ordered data tables.  Priority is the table order:
the first signal whose predicate matches wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional, Tuple


def _has_any(text: str, *keywords: str) -> bool:
    return any(k in text for k in keywords)


# ═══════════════════════════════════════════════════════════════
#  NON-INCIDENT GATE
# ═══════════════════════════════════════════════════════════════


QUESTION_PHRASES: Tuple[str, ...] = (
    "what is",
    "how to",
    "current version",
    "which version",
    "can you",
    "could you",
)

INCIDENT_KEYWORDS: Tuple[str, ...] = (
    "error", "exception", "fail", "failed", "failure", "fatal", "critical",
    "404", "500", "502", "503", "timeout", "timed out", "crash", "refused",
    "reset", "warning", "stack trace", "not found", "unreachable", "denied",
    "out of memory", "oom", "segfault", "panic", "deadlock",
)

_TRAILING_QUESTION_RE = re.compile(r"\?\s*$")
_QUESTION_PHRASE_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(p) for p in QUESTION_PHRASES) + r")\b"
)
_INTERROGATIVE_RE = re.compile(
    r"\b(what|how|which|why|when|where)\s+(is|are|do|does|did)\b"
)


def looks_like_question(text: str) -> bool:
    """True if *text* (lowercase) reads as a question rather than logs."""
    return bool(
        _TRAILING_QUESTION_RE.search(text)
        or _QUESTION_PHRASE_RE.search(text)
        or _INTERROGATIVE_RE.search(text)
    )


def describes_incident(text: str) -> bool:
    """True if the combined lowercase log text describes a failure.

    Empty text and question-like text never describe an incident.
    """
    lower = text.strip().lower()
    if not lower:
        return False
    if looks_like_question(lower):
        return False
    return _has_any(lower, *INCIDENT_KEYWORDS)


# ═══════════════════════════════════════════════════════════════
#  LOG-GROUNDED SIGNALS
# ═══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class LogSignal:
    """A strong indicator read directly from the logs.

    Attributes:
        name: Stable identifier, e.g. ``db_timeout``.
        cause: Verdict cause used when the signal overrides.
        next_steps: Verdict next steps used when the signal overrides.
        expected_keywords: A suggestion whose cause contains any of
            these already agrees with the signal.
        detect: Predicate over the combined lowercase log text.
    """
    name: str
    cause: str
    next_steps: str
    expected_keywords: Tuple[str, ...]
    detect: Callable[[str], bool]

    def agrees_with(self, cause: str) -> bool:
        return _has_any(cause.lower(), *self.expected_keywords)


def _mentions_timeout(text: str) -> bool:
    return _has_any(text, "timeout", "timed out")


LOG_SIGNALS: Tuple[LogSignal, ...] = (
    LogSignal(
        name="404",
        cause="Resource not found (404)",
        next_steps="Verify request URL and route; check if the resource or endpoint exists.",
        expected_keywords=("404", "not found", "resource"),
        detect=lambda t: "404" in t or ("not found" in t and "connection" not in t),
    ),
    LogSignal(
        name="500",
        cause="Internal server error (500)",
        next_steps="Check application logs and server-side code for exceptions.",
        expected_keywords=("500", "internal", "server error"),
        detect=lambda t: _has_any(t, "500", "internal server error"),
    ),
    LogSignal(
        name="db_timeout",
        cause="Database timeout or overload",
        next_steps="Check connection pool and DB health. Review slow queries and indexes.",
        expected_keywords=("database", "db", "timeout"),
        detect=lambda t: _mentions_timeout(t) and _has_any(t, "db", "database", "connection"),
    ),
    LogSignal(
        name="connection_refused",
        cause="Connection refused (service unreachable)",
        next_steps="Verify target host/port is running and reachable; check firewall and network.",
        expected_keywords=("refused", "unreachable", "connection"),
        detect=lambda t: "connection refused" in t,
    ),
    LogSignal(
        name="connection_reset",
        cause="Database or network connection instability",
        next_steps="Check connection pool and DB health; verify network stability.",
        expected_keywords=("reset", "connection", "instability"),
        detect=lambda t: "connection reset" in t,
    ),
    LogSignal(
        name="timeout",
        cause="Service timeout",
        next_steps="Check upstream service health and timeout settings.",
        expected_keywords=("timeout",),
        detect=_mentions_timeout,
    ),
)


def detect_log_signal(text: str) -> Optional[LogSignal]:
    """Return the highest-priority signal present in *text*, if any."""
    lower = text.lower()
    for signal in LOG_SIGNALS:
        if signal.detect(lower):
            return signal
    return None
