"""
Tests for Editing Operations

Tests for storyframe/storyboard/editing.py
"""

import pytest

from storyframe.core.constants import SettingKind, STYLE_PRESETS
from storyframe.core.exceptions import EditError, InvalidEditError
from storyframe.storyboard import editing
from storyframe.storyboard.models import Shot


class TestScriptEdits:
    """Tests for shot and script edits."""

    def test_update_shot(self, sample_bundle):
        """Test one shot changes and the input is untouched."""
        script = editing.update_shot(sample_bundle.script, 3, description="Rain on glass")

        assert script[2].description == "Rain on glass"
        assert script[2].voiceover == "Line 3"
        assert sample_bundle.script[2].description == "Shot 3 description"
        assert script[0] is sample_bundle.script[0]

    def test_update_unknown_shot(self, sample_bundle):
        with pytest.raises(EditError) as exc_info:
            editing.update_shot(sample_bundle.script, 99, description="x")

        assert not isinstance(exc_info.value, InvalidEditError)

    def test_update_unknown_field(self, sample_bundle):
        with pytest.raises(InvalidEditError):
            editing.update_shot(sample_bundle.script, 1, id=5)

    def test_replace_script_keeps_groups(self, sample_bundle):
        """Test replacing the script keeps groups and settings."""
        new_script = [shot.model_copy(update={"movement": "Static"}) for shot in sample_bundle.script]

        bundle = editing.replace_script(sample_bundle, new_script)

        assert all(shot.movement == "Static" for shot in bundle.script)
        assert bundle.groups == sample_bundle.groups
        assert bundle.settings == sample_bundle.settings

    def test_merge_refined_shot(self, sample_bundle):
        """Test only the targeted shot is taken from a refined script."""
        refined = [shot.model_copy(update={"description": "rewritten"}) for shot in sample_bundle.script]

        script = editing.merge_refined_shot(sample_bundle.script, refined, 2)

        assert script[1].description == "rewritten"
        assert [s.description for i, s in enumerate(script) if i != 1] == \
            [s.description for i, s in enumerate(sample_bundle.script) if i != 1]

    def test_merge_refined_shot_missing(self, sample_bundle):
        with pytest.raises(EditError):
            editing.merge_refined_shot(sample_bundle.script, [Shot(id=1, description="", voiceover="", movement="")], 5)


class TestSettingsEdits:
    """Tests for settings edits."""

    def test_update_character_field(self, sample_bundle):
        settings = editing.update_setting_item(sample_bundle.settings, SettingKind.CHARACTER, 0, "name", "Sam")

        assert settings.characters[0].name == "Sam"
        assert settings.characters[0].prompt == "noir detective sheet"
        assert sample_bundle.settings.characters[0].name == "Detective"

    def test_update_accepts_kind_value(self, sample_bundle):
        settings = editing.update_setting_item(sample_bundle.settings, "scene", 1, "prompt", "neon alley")

        assert settings.scenes[1].prompt == "neon alley"

    @pytest.mark.parametrize("index", [-1, 1, 10])
    def test_update_bad_index(self, sample_bundle, index):
        """Test out-of-range and negative indexes are rejected."""
        with pytest.raises(EditError):
            editing.update_setting_item(sample_bundle.settings, SettingKind.CHARACTER, index, "name", "x")

    def test_update_bad_field(self, sample_bundle):
        with pytest.raises(InvalidEditError):
            editing.update_setting_item(sample_bundle.settings, SettingKind.SCENE, 0, "colour", "x")

    def test_bad_kind(self, sample_bundle):
        with pytest.raises(InvalidEditError):
            editing.add_setting_item(sample_bundle.settings, "prop")

    def test_add_placeholder(self, sample_bundle):
        """Test new items get the placeholder text."""
        settings = editing.add_setting_item(sample_bundle.settings, SettingKind.CHARACTER)
        settings = editing.add_setting_item(settings, SettingKind.SCENE)

        assert settings.characters[-1].name == "New character"
        assert settings.scenes[-1].name == "New scene"
        assert settings.scenes[-1].prompt == "AI prompt pending..."
        assert len(sample_bundle.settings.characters) == 1

    def test_delete_item(self, sample_bundle):
        settings = editing.delete_setting_item(sample_bundle.settings, SettingKind.SCENE, 0)

        assert [s.name for s in settings.scenes] == ["Alley"]

    def test_delete_bad_index(self, sample_bundle):
        with pytest.raises(EditError):
            editing.delete_setting_item(sample_bundle.settings, SettingKind.SCENE, 2)

    def test_update_global(self, sample_bundle):
        settings = editing.update_global_setting(sample_bundle.settings, "overview", "Mars colony")

        assert settings.overview == "Mars colony"
        assert settings.style == "Film noir"

    def test_update_global_unknown(self, sample_bundle):
        with pytest.raises(InvalidEditError):
            editing.update_global_setting(sample_bundle.settings, "characters", "x")

    def test_style_preset(self, sample_bundle):
        settings = editing.apply_style_preset(sample_bundle.settings, STYLE_PRESETS[0])

        assert settings.style == STYLE_PRESETS[0]

    def test_unknown_preset(self, sample_bundle):
        with pytest.raises(InvalidEditError):
            editing.apply_style_preset(sample_bundle.settings, "Vaporwave deluxe")


class TestPromptEdits:
    """Tests for prompt result edits."""

    def test_update_field_by_wire_name(self, sample_prompt_result):
        result = editing.update_image_prompt_field(sample_prompt_result, "colorGrade", "teal and orange")

        assert result.image_prompts.color_grade == "teal and orange"
        assert sample_prompt_result.image_prompts.color_grade == "high contrast monochrome"

    def test_update_field_by_attribute_name(self, sample_prompt_result):
        result = editing.update_image_prompt_field(sample_prompt_result, "color_grade", "sepia")

        assert result.image_prompts.color_grade == "sepia"

    def test_update_unknown_field(self, sample_prompt_result):
        with pytest.raises(InvalidEditError):
            editing.update_image_prompt_field(sample_prompt_result, "mood", "tense")

    def test_partial_merge_leaves_other_fields(self, sample_prompt_result):
        """Test a partial merge changes only the named fields."""
        result = editing.merge_image_prompts(sample_prompt_result, {"lighting": "neon", "style": "pulp"})

        before = sample_prompt_result.image_prompts.to_wire()
        after = result.image_prompts.to_wire()
        assert after["lighting"] == "neon"
        assert after["style"] == "pulp"
        assert {k: v for k, v in after.items() if k not in ("lighting", "style")} == \
            {k: v for k, v in before.items() if k not in ("lighting", "style")}
        assert result.camera_prompts == sample_prompt_result.camera_prompts

    def test_replace_image_prompts(self, sample_prompt_result, prompt_result_factory):
        replacement = prompt_result_factory(9, tag="other").image_prompts

        result = editing.replace_image_prompts(sample_prompt_result, replacement)

        assert result.image_prompts == replacement
        assert result.group_id == 1

    def test_refined_target_field_only(self, sample_prompt_result, prompt_result_factory):
        """Test a targeted refine takes only that field from the answer."""
        refined = prompt_result_factory(1, tag="refined").image_prompts.model_copy(
            update={"lighting": "candle light"}
        )

        result = editing.merge_refined_prompts(sample_prompt_result, refined, "lighting")

        assert result.image_prompts.lighting == "candle light"
        assert result.image_prompts.subject == sample_prompt_result.image_prompts.subject

    def test_refined_whole(self, sample_prompt_result, prompt_result_factory):
        refined = prompt_result_factory(1, tag="refined").image_prompts

        result = editing.merge_refined_prompts(sample_prompt_result, refined)

        assert result.image_prompts == refined

    def test_update_camera_prompts(self, sample_prompt_result):
        result = editing.update_camera_prompts(sample_prompt_result, "Shot 1: crane up")

        assert result.camera_prompts == "Shot 1: crane up"
        assert result.image_prompts == sample_prompt_result.image_prompts
