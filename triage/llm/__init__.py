"""Backend-facing half of the pipeline: context, backends, parsing, grounding."""

from triage.llm.advisor import Advisor
from triage.llm.backends import BACKENDS, BackendReply, TextBackend, create_backend
from triage.llm.context_builder import SYSTEM_PROMPT, SmartContext, build_smart_context

__all__ = [
    "Advisor",
    "BACKENDS",
    "BackendReply",
    "TextBackend",
    "create_backend",
    "SYSTEM_PROMPT",
    "SmartContext",
    "build_smart_context",
]
