"""
File: llm/response_parser.py
Purpose: Extract and validate the JSON answer from generated text.
Dependencies: pydantic, json (stdlib)
Performance: <1ms per response.

Models often wrap JSON in markdown fences or add prose around it.
Extraction order: fenced block → first-to-last brace span → whole
text.  Anything that does not validate as a ``SuggestionPayload``
raises ``BackendUnavailable``; there is no partial interpretation.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from triage.errors import BackendUnavailable

_FENCED_RE = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```")
_BRACE_SPAN_RE = re.compile(r"\{[\s\S]*\}")


class SuggestionPayload(BaseModel):
    """The four fields a backend is asked to return.

    Missing fields stay None and are defaulted during grounding;
    present fields must have the right type.
    """

    model_config = ConfigDict(extra="ignore")

    likely_cause: Optional[str] = None
    reasoning: Optional[str] = None
    next_steps: Optional[str] = None
    confidence: Optional[float] = Field(default=None, allow_inf_nan=False)

    @field_validator("next_steps", mode="before")
    @classmethod
    def _join_step_list(cls, v: Any) -> Any:
        if isinstance(v, list) and all(isinstance(s, str) for s in v):
            return " ".join(s.strip() for s in v if s.strip())
        return v


def extract_json_object(text: str) -> Dict[str, Any]:
    """Decode the JSON object embedded in *text*.

    Raises:
        BackendUnavailable: If no JSON object can be decoded.
    """
    candidate = text.strip()
    fenced = _FENCED_RE.search(candidate)
    if fenced:
        candidate = fenced.group(1).strip()
    else:
        span = _BRACE_SPAN_RE.search(candidate)
        if span:
            candidate = span.group(0)

    try:
        decoded = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise BackendUnavailable(0, f"Invalid JSON in model output: {exc}") from exc

    if not isinstance(decoded, dict):
        raise BackendUnavailable(0, "Model output is not a JSON object")
    return decoded


def parse_suggestion(text: str) -> SuggestionPayload:
    """Extract and validate a suggestion from raw generated text."""
    data = extract_json_object(text)
    try:
        return SuggestionPayload.model_validate(data)
    except ValidationError as exc:
        fields: List[str] = [".".join(str(p) for p in e["loc"]) for e in exc.errors()]
        raise BackendUnavailable(
            0, f"Model output failed validation: {', '.join(fields)}"
        ) from exc
