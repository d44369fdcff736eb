"""Tests for llm/error_taxonomy.py — failure → degraded suggestion."""

from __future__ import annotations

import pytest

from triage.llm.error_taxonomy import (
    DEFAULT_ADVICE,
    DEFAULT_CAUSE,
    classify_failure,
    missing_credential,
    service_unavailable,
    unknown_provider,
)


class TestClassifyFailure:
    @pytest.mark.parametrize(
        "status, provider, expected",
        [
            (429, "groq", "Groq rate limit (429)"),
            (401, "openai", "OpenAI API key invalid or bad request (401)"),
            (400, "gemini", "Gemini API key invalid or bad request (400)"),
            (403, "grok", "Grok access forbidden (403)"),
            (404, "gemini", "Gemini model not found (404)"),
        ],
    )
    def test_status_rules(self, status, provider, expected):
        cause, _ = classify_failure(status, "", provider)
        assert cause == expected

    def test_status_beats_body(self):
        cause, _ = classify_failure(429, '{"error": "insufficient_quota"}', "openai")
        assert cause == "OpenAI rate limit (429)"

    def test_quota_body(self):
        cause, advice = classify_failure(500, '{"error": {"code": "insufficient_quota"}}', "openai")
        assert cause == "OpenAI quota exceeded"
        assert "billing" in advice

    def test_invalid_key_body_case_insensitive(self):
        cause, advice = classify_failure(0, "API key not valid. Please pass a valid API key.", "gemini")
        assert cause == "Gemini API key invalid"
        assert "GEMINI_API_KEY" in advice

    def test_default(self):
        assert classify_failure(500, "oops", "groq") == (DEFAULT_CAUSE, DEFAULT_ADVICE)

    def test_transport_error_default(self):
        cause, _ = classify_failure(0, "Connection refused", "grok")
        assert cause == "Analysis temporarily unavailable"

    def test_key_advice_names_variable(self):
        _, advice = classify_failure(401, "", "groq")
        assert "GROQ_API_KEY" in advice
        assert "console.groq.com" in advice

    def test_not_found_advice_names_model_variable(self):
        _, advice = classify_failure(404, "", "openai")
        assert "OPENAI_MODEL" in advice

    def test_rate_limit_advice_is_provider_specific(self):
        _, groq_advice = classify_failure(429, "", "groq")
        _, gemini_advice = classify_failure(429, "", "gemini")
        assert groq_advice != gemini_advice


class TestSuggestions:
    def test_service_unavailable_shape(self):
        suggestion = service_unavailable(500, "boom", "groq")
        assert suggestion.confidence == 0.0
        assert suggestion.degraded is True
        assert suggestion.backend == "groq"
        assert suggestion.reasoning == "AI service could not be reached (provider: groq)."

    def test_missing_credential(self):
        suggestion = missing_credential("gemini")
        assert suggestion.likely_cause == "Gemini API key not configured"
        assert "GEMINI_API_KEY" in suggestion.next_steps
        assert suggestion.confidence == 0.0

    def test_unknown_provider(self):
        suggestion = unknown_provider("claude")
        assert suggestion.likely_cause == "No backend registered for provider 'claude'"
        assert suggestion.degraded is True
        assert "groq" in suggestion.next_steps
