"""
Tests for Response Sanitizer

Tests for storyframe/llm/sanitizer.py
"""

import json
from typing import List

import pytest

from storyframe.core.exceptions import SanitizationError
from storyframe.llm.sanitizer import ResponseSanitizer, parse_json, sanitize, strip_fences
from storyframe.storyboard.models import ImagePrompts, PromptResult, ScriptBundle, Shot


@pytest.fixture
def sanitizer():
    return ResponseSanitizer()


class TestStripFences:
    """Tests for fence stripping."""

    @pytest.mark.parametrize("raw", [
        '{"a": 1}',
        '```json\n{"a": 1}\n```',
        '```\n{"a": 1}\n```',
        '  ```json{"a": 1}```  ',
    ])
    def test_variants(self, raw):
        assert strip_fences(raw) == '{"a": 1}'

    def test_empty(self):
        assert strip_fences("") == ""
        assert strip_fences(None) == ""


class TestParse:
    """Tests for parse and validate."""

    def test_fenced_equals_unfenced(self, sanitizer, sample_prompt_result):
        """Test a fenced payload parses to the same structure as the bare one."""
        payload = json.dumps(sample_prompt_result.to_wire())

        bare = sanitizer.parse(payload, PromptResult)
        fenced = sanitizer.parse(f"```json\n{payload}\n```", PromptResult)

        assert bare == fenced == sample_prompt_result

    def test_bundle(self, sanitizer, bundle_json, sample_bundle):
        assert sanitizer.parse(bundle_json, ScriptBundle) == sample_bundle

    def test_missing_field_raises(self, sanitizer, sample_prompt_result):
        """Test a payload missing a required field is rejected whole."""
        data = sample_prompt_result.to_wire()
        del data["imagePrompts"]["quality"]

        with pytest.raises(SanitizationError) as exc_info:
            sanitizer.parse(json.dumps(data), PromptResult)

        assert exc_info.value.details["expected"] == "PromptResult"

    def test_invalid_json_raises(self, sanitizer):
        with pytest.raises(SanitizationError) as exc_info:
            sanitizer.parse('```json\n{"script": [\n```', ScriptBundle)

        assert '{"script"' in exc_info.value.raw_text

    def test_empty_response_raises(self):
        with pytest.raises(SanitizationError):
            parse_json("   ")

    def test_nested_key_and_list(self, sanitizer, sample_bundle):
        """Test a list payload under a top-level key."""
        raw = json.dumps({"script": [shot.to_wire() for shot in sample_bundle.script]})

        script = sanitizer.parse(raw, List[Shot], key="script")

        assert script == sample_bundle.script

    def test_missing_key_raises(self, sanitizer):
        with pytest.raises(SanitizationError):
            sanitizer.parse('{"shots": []}', List[Shot], key="script")

    def test_module_level_helper(self, sample_prompt_result):
        raw = json.dumps(sample_prompt_result.image_prompts.to_wire())

        assert sanitize(raw, ImagePrompts) == sample_prompt_result.image_prompts
