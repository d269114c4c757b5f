"""
Tests for Exceptions Module

Tests for storyframe/core/exceptions.py
"""

import pytest

from storyframe.core.exceptions import (
    BriefValidationError,
    ContentBlockedError,
    EditError,
    IllegalStateError,
    IllegalTransitionError,
    InvalidEditError,
    LLMError,
    LLMProviderError,
    LLMResponseError,
    PipelineError,
    QueueBusyError,
    RateLimitError,
    SanitizationError,
    StoryframeError,
    ValidationError,
)


class TestHierarchy:
    """Tests for exception inheritance."""

    @pytest.mark.parametrize("error, parents", [
        (BriefValidationError("empty"), (ValidationError,)),
        (IllegalTransitionError("idle", "reviewing_prompts"), (PipelineError,)),
        (QueueBusyError(3), (IllegalStateError, PipelineError)),
        (RateLimitError("google", "429"), (LLMProviderError, LLMError)),
        (ContentBlockedError("google", "SAFETY"), (LLMProviderError, LLMError)),
        (SanitizationError("bad json"), (LLMResponseError, LLMError)),
        (EditError("shot", 99), (LookupError,)),
        (InvalidEditError("style preset", "nope"), (EditError, ValidationError)),
    ])
    def test_parents(self, error, parents):
        """Test each error sits under its family and the root."""
        assert isinstance(error, StoryframeError)
        for parent in parents:
            assert isinstance(error, parent)


class TestDetails:
    """Tests for error details."""

    def test_str_includes_details(self):
        """Test details are rendered after the message."""
        error = IllegalTransitionError("idle", "generating_prompts")

        assert "idle -> generating_prompts" in str(error)
        assert error.details == {"current": "idle", "target": "generating_prompts"}

    def test_rate_limit_status(self):
        """Test RateLimitError carries a 429 status code."""
        assert RateLimitError("google", "slow down").status_code == 429

    def test_sanitization_keeps_raw_text(self):
        """Test the raw response is kept and previewed."""
        error = SanitizationError("invalid JSON", raw_text="x" * 500, expected="ScriptBundle")

        assert error.raw_text == "x" * 500
        assert len(error.details["preview"]) == 200
        assert error.details["expected"] == "ScriptBundle"
