"""Core deterministic analysis modules.

Exports:
    preprocess: Dedupe, time-window and severity-classify log lines
    DecisionEngine: Log-signal override + metric-correlated confidence
    detect_log_signal: Ordered log-grounded signal table lookup
"""

from triage.core.decision_engine import Decision, DecisionEngine
from triage.core.preprocessor import preprocess
from triage.core.signal_detector import LogSignal, describes_incident, detect_log_signal

__all__ = [
    "Decision",
    "DecisionEngine",
    "LogSignal",
    "describes_incident",
    "detect_log_signal",
    "preprocess",
]
