"""
File: llm/error_taxonomy.py
Purpose: Map backend failures to actionable "service unavailable" suggestions.
Dependencies: Schema models only.
Performance: O(1) lookups.

A failure never surfaces as an exception past the advisor.  It becomes
a zero-confidence, degraded Suggestion whose cause names the failure
class and whose next steps tell the operator what to do.
"""

from __future__ import annotations

from typing import Callable, Dict, Tuple

from triage.schema import Suggestion

DISPLAY_NAMES: Dict[str, str] = {
    "gemini": "Gemini",
    "openai": "OpenAI",
    "grok": "Grok",
    "groq": "Groq",
}

KEY_PAGES: Dict[str, str] = {
    "gemini": "https://aistudio.google.com/app/apikey",
    "openai": "https://platform.openai.com/api-keys",
    "grok": "https://console.x.ai",
    "groq": "https://console.groq.com/keys",
}

RATE_LIMIT_ADVICE: Dict[str, str] = {
    "gemini": "Gemini: wait ~1 min, then retry (free tier RPM limit).",
    "openai": "OpenAI: check usage at platform.openai.com, then wait or add billing.",
    "grok": "Grok: wait ~1 min, then retry. Check rate limits at console.x.ai.",
    "groq": "Groq: wait ~1 min (RPM limit), then retry.",
}

DEFAULT_CAUSE = "Analysis temporarily unavailable"
DEFAULT_ADVICE = "Check API key and network; retry later."


def display_name(provider: str) -> str:
    return DISPLAY_NAMES.get(provider, provider.capitalize() or "Unknown")


def _env(provider: str, suffix: str) -> str:
    return f"{provider.upper()}_{suffix}"


def _rate_limited(provider: str) -> str:
    return RATE_LIMIT_ADVICE.get(
        provider, "Wait 1 minute, then retry. Avoid many requests in a short time."
    )


def _bad_key(provider: str) -> str:
    page = KEY_PAGES.get(provider)
    where = f"Get a key at {page}. " if page else ""
    return f"{where}Set {_env(provider, 'API_KEY')} in the environment."


def _forbidden(provider: str) -> str:
    return f"Check that {_env(provider, 'API_KEY')} is allowed to use this model."


def _not_found(provider: str) -> str:
    return (
        f"Check {_env(provider, 'MODEL')} and {_env(provider, 'URL')}; "
        "the model or endpoint was not found."
    )


def _quota(provider: str) -> str:
    if provider == "openai":
        return "Check billing at platform.openai.com, then retry."
    return "Wait for the quota to reset, or configure another provider."


# Cause templates take {name} (display name) and {status}.
_STATUS_RULES: Dict[int, Tuple[str, Callable[[str], str]]] = {
    429: ("{name} rate limit (429)", _rate_limited),
    400: ("{name} API key invalid or bad request ({status})", _bad_key),
    401: ("{name} API key invalid or bad request ({status})", _bad_key),
    403: ("{name} access forbidden (403)", _forbidden),
    404: ("{name} model not found (404)", _not_found),
}

# Tried in order after the status rules, against the lowercased body.
_BODY_RULES: Tuple[Tuple[Tuple[str, ...], str, Callable[[str], str]], ...] = (
    (("quota", "insufficient_quota"), "{name} quota exceeded", _quota),
    (("api key not valid", "invalid_argument"), "{name} API key invalid", _bad_key),
)


def classify_failure(status: int, detail: str, provider: str) -> Tuple[str, str]:
    """Return (cause, next_steps) for a backend failure.

    Args:
        status: HTTP status (0 for transport / parse failures).
        detail: Response body or error message.
        provider: Backend id.
    """
    name = display_name(provider)

    if status in _STATUS_RULES:
        template, advice = _STATUS_RULES[status]
        return template.format(name=name, status=status), advice(provider)

    lower = detail.lower()
    for needles, template, advice in _BODY_RULES:
        if any(n in lower for n in needles):
            return template.format(name=name, status=status), advice(provider)

    return DEFAULT_CAUSE, DEFAULT_ADVICE


def service_unavailable(status: int, detail: str, provider: str) -> Suggestion:
    """Degraded suggestion for a failed backend call."""
    cause, next_steps = classify_failure(status, detail, provider)
    return Suggestion(
        likely_cause=cause,
        reasoning=f"AI service could not be reached (provider: {provider}).",
        next_steps=next_steps,
        confidence=0.0,
        backend=provider,
        degraded=True,
    )


def missing_credential(provider: str) -> Suggestion:
    """Degraded suggestion when the selected backend has no API key."""
    return Suggestion(
        likely_cause=f"{display_name(provider)} API key not configured",
        reasoning=f"No credential is set for the selected provider ({provider}).",
        next_steps=_bad_key(provider),
        confidence=0.0,
        backend=provider,
        degraded=True,
    )


def unknown_provider(provider: str) -> Suggestion:
    """Degraded suggestion when the configured provider id is not registered."""
    return Suggestion(
        likely_cause=f"No backend registered for provider '{provider}'",
        reasoning="The configured provider does not match any known backend.",
        next_steps="Set AI_PROVIDER to one of: " + ", ".join(sorted(DISPLAY_NAMES)) + ".",
        confidence=0.0,
        backend=provider,
        degraded=True,
    )
