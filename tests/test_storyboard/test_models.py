"""
Tests for Storyboard Models

Tests for storyframe/storyboard/models.py
"""

import pytest
from pydantic import ValidationError

from storyframe.core.constants import IMAGE_PROMPT_FIELDS
from storyframe.storyboard.models import BatchProgress, ImagePrompts, PromptResult, ScriptBundle


class TestWireNames:
    """Tests for camelCase wire names."""

    def test_prompt_result_accepts_wire_names(self, sample_prompt_result):
        """Test PromptResult parses from and dumps to camelCase."""
        wire = sample_prompt_result.to_wire()

        assert set(wire) == {"groupId", "imagePrompts", "cameraPrompts"}
        assert "colorGrade" in wire["imagePrompts"]
        assert PromptResult.model_validate(wire) == sample_prompt_result

    def test_attribute_names_accepted(self, sample_prompt_result):
        """Test snake_case attribute names are accepted on input."""
        result = PromptResult(
            group_id=3,
            image_prompts=sample_prompt_result.image_prompts,
            camera_prompts="pan left",
        )

        assert result.group_id == 3

    def test_image_prompt_order(self, sample_prompt_result):
        """Test ordered_items follows the fixed field order."""
        names = [name for name, _ in sample_prompt_result.image_prompts.ordered_items()]

        assert names == IMAGE_PROMPT_FIELDS

    def test_missing_field_rejected(self):
        """Test a missing image prompt field fails validation."""
        with pytest.raises(ValidationError):
            ImagePrompts(shot="a", subject="b", environment="c", lighting="d",
                         camera="e", colorGrade="f", style="g")

    def test_bundle_roundtrip(self, sample_bundle):
        """Test a bundle survives dump and validate."""
        assert ScriptBundle.model_validate(sample_bundle.to_wire()) == sample_bundle


class TestBatchProgress:
    """Tests for BatchProgress."""

    def test_percent(self):
        assert BatchProgress(current=1, total=4).percent == 25.0

    def test_empty_total(self):
        assert BatchProgress(current=0, total=0).percent == 100.0

    def test_to_dict(self):
        assert BatchProgress(2, 4).to_dict() == {"current": 2, "total": 4, "percent": 50.0}
