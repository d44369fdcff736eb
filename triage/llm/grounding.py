"""
File: llm/grounding.py
Purpose: Sanitize a parsed suggestion and penalize unsupported causes.
Dependencies: Schema models only.
Performance: O(t) substring checks, t = cause tokens.

A cause with more than two meaningful words, none of which occur in
the logs, loses 0.2 confidence (floored at 0.3).  Logs mentioning
"db" also ground the words database / connection / timeout.
"""

from __future__ import annotations

from typing import List, Tuple

from triage.llm.response_parser import SuggestionPayload
from triage.schema import (
    DEFAULT_NEXT_STEPS,
    UNKNOWN_CAUSE,
    PreprocessResult,
    Suggestion,
    clamp_confidence,
)

DEFAULT_CONFIDENCE = 0.5
HALLUCINATION_PENALTY = 0.2
HALLUCINATION_FLOOR = 0.3
MIN_TOKEN_LENGTH = 3
DB_SYNONYMS = ("database", "connection", "timeout")


def cause_tokens(cause: str) -> List[str]:
    return [w for w in cause.lower().split() if len(w) >= MIN_TOKEN_LENGTH]


def is_grounded(cause: str, log_text: str) -> bool:
    """True unless the cause has >2 tokens and none appear in *log_text*."""
    tokens = cause_tokens(cause)
    if len(tokens) <= 2:
        return True
    db_in_logs = "db" in log_text
    return any(
        token in log_text or (db_in_logs and token in DB_SYNONYMS)
        for token in tokens
    )


def ground_and_sanitize(
    payload: SuggestionPayload,
    preprocessed: PreprocessResult,
    backend: str = "",
) -> Tuple[Suggestion, bool]:
    """Turn a parsed payload into a grounded Suggestion.

    Args:
        payload: Validated backend output.
        preprocessed: Preprocessed logs used as ground truth.
        backend: Backend id recorded on the suggestion.

    Returns:
        (suggestion, penalized), where ``penalized`` is True when the
        hallucination penalty was applied.
    """
    cause = (payload.likely_cause or "").strip()
    reasoning = (payload.reasoning or "").strip()
    next_steps = (payload.next_steps or "").strip()
    confidence = clamp_confidence(
        DEFAULT_CONFIDENCE if payload.confidence is None else payload.confidence
    )

    penalized = False
    if cause and cause != UNKNOWN_CAUSE and not is_grounded(cause, preprocessed.log_text()):
        confidence = max(HALLUCINATION_FLOOR, confidence - HALLUCINATION_PENALTY)
        penalized = True

    suggestion = Suggestion(
        likely_cause=cause or UNKNOWN_CAUSE,
        reasoning=reasoning,
        next_steps=next_steps or DEFAULT_NEXT_STEPS,
        confidence=clamp_confidence(confidence),
        backend=backend,
    )
    return suggestion, penalized
