"""Incident Triage — root-cause suggestions for incident logs.

Turns raw log lines plus a metric sample into a verdict (likely cause,
confidence, next steps).  A generative backend proposes a cause; the
decision engine overrides it when the logs carry an unambiguous
signal, and otherwise correlates its confidence with the metrics.

Architecture: deterministic preprocessing + one backend call + deterministic decision
Pipeline: Preprocess → Advisor → Decision Engine
"""

from triage.agent import IncidentAnalyzer
from triage.config import AnalyzerConfig, BackendConfig
from triage.errors import BackendUnavailable, ConfigurationError, TriageError
from triage.schema import AnalysisResult, MetricSample, Verdict

__version__ = "1.0.0"

__all__ = [
    "IncidentAnalyzer",
    "AnalyzerConfig",
    "BackendConfig",
    "AnalysisResult",
    "MetricSample",
    "Verdict",
    "TriageError",
    "ConfigurationError",
    "BackendUnavailable",
]
