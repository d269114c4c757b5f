"""
Storyboard editing and merge operations.

Pure functions: each returns a new structure and leaves its input
untouched. Characters and scenes are addressed by list position; shots and
groups by their numeric id. A target that doesn't exist raises EditError; an
unknown field, kind or preset name raises InvalidEditError.
"""

from typing import Dict, List, Optional

from storyframe.core.constants import (
    GLOBAL_SETTING_FIELDS,
    SETTING_PLACEHOLDERS,
    STYLE_PRESETS,
    SettingKind,
)
from storyframe.core.exceptions import EditError, InvalidEditError
from .models import ImagePrompts, PromptResult, ScriptBundle, Settings, SettingItem, Shot

SETTING_ITEM_FIELDS = tuple(SettingItem.model_fields)
SHOT_EDIT_FIELDS = ("description", "voiceover", "movement")


def _kind(kind) -> SettingKind:
    try:
        return SettingKind(kind.value if isinstance(kind, SettingKind) else kind)
    except ValueError:
        raise InvalidEditError("setting kind", kind)


def _items_attr(kind: SettingKind) -> str:
    return "characters" if kind is SettingKind.CHARACTER else "scenes"


def _check_index(items: list, index: int, target: str) -> None:
    # Negative indexes would silently address from the end
    if not 0 <= index < len(items):
        raise EditError(target, index)


# =============================================================================
# SCRIPT
# =============================================================================

def update_shot(script: List[Shot], shot_id: int, **fields: str) -> List[Shot]:
    """Return a script with the given fields of one shot replaced."""
    unknown = set(fields) - set(SHOT_EDIT_FIELDS)
    if unknown:
        raise InvalidEditError("shot field", sorted(unknown)[0])
    if not any(shot.id == shot_id for shot in script):
        raise EditError("shot", shot_id)
    return [
        shot.model_copy(update=fields) if shot.id == shot_id else shot
        for shot in script
    ]


def replace_script(bundle: ScriptBundle, script: List[Shot]) -> ScriptBundle:
    """Return a bundle with its script swapped and groups/settings kept."""
    return bundle.model_copy(update={"script": list(script)})


def merge_refined_shot(script: List[Shot], refined: List[Shot], shot_id: int) -> List[Shot]:
    """Take only ``shot_id`` from a refined script, keeping every other shot."""
    replacement = next((shot for shot in refined if shot.id == shot_id), None)
    if replacement is None:
        raise EditError("refined shot", shot_id)
    return update_shot(
        script,
        shot_id,
        description=replacement.description,
        voiceover=replacement.voiceover,
        movement=replacement.movement,
    )


# =============================================================================
# SETTINGS
# =============================================================================

def update_setting_item(
    settings: Settings,
    kind,
    index: int,
    field: str,
    value: str
) -> Settings:
    """Return settings with one field of one character or scene replaced."""
    kind = _kind(kind)
    if field not in SETTING_ITEM_FIELDS:
        raise InvalidEditError("setting field", field)
    attr = _items_attr(kind)
    items = list(getattr(settings, attr))
    _check_index(items, index, kind.value)
    items[index] = items[index].model_copy(update={field: value})
    return settings.model_copy(update={attr: items})


def add_setting_item(settings: Settings, kind) -> Settings:
    """Return settings with a placeholder character or scene appended."""
    kind = _kind(kind)
    attr = _items_attr(kind)
    items = list(getattr(settings, attr))
    items.append(SettingItem(**SETTING_PLACEHOLDERS[kind]))
    return settings.model_copy(update={attr: items})


def delete_setting_item(settings: Settings, kind, index: int) -> Settings:
    """Return settings without the character or scene at ``index``."""
    kind = _kind(kind)
    attr = _items_attr(kind)
    items = list(getattr(settings, attr))
    _check_index(items, index, kind.value)
    del items[index]
    return settings.model_copy(update={attr: items})


def update_global_setting(settings: Settings, field: str, value: str) -> Settings:
    """Return settings with ``overview`` or ``style`` replaced."""
    if field not in GLOBAL_SETTING_FIELDS:
        raise InvalidEditError("global setting", field)
    return settings.model_copy(update={field: value})


def apply_style_preset(settings: Settings, preset: str) -> Settings:
    if preset not in STYLE_PRESETS:
        raise InvalidEditError("style preset", preset)
    return update_global_setting(settings, "style", preset)


def replace_settings(bundle: ScriptBundle, settings: Settings) -> ScriptBundle:
    return bundle.model_copy(update={"settings": settings})


# =============================================================================
# PROMPT RESULTS
# =============================================================================

def _attr_for_wire(field: str) -> str:
    for name, info in ImagePrompts.model_fields.items():
        if field in (name, info.alias):
            return name
    raise InvalidEditError("image prompt field", field)


def update_image_prompt_field(result: PromptResult, field: str, value: str) -> PromptResult:
    """Replace one image prompt field; ``field`` may be a wire or attribute name."""
    return merge_image_prompts(result, {field: value})


def merge_image_prompts(result: PromptResult, partial: Dict[str, str]) -> PromptResult:
    """Merge a partial mapping of image prompt fields, leaving the rest untouched."""
    update = {_attr_for_wire(field): value for field, value in partial.items()}
    image_prompts = result.image_prompts.model_copy(update=update)
    return result.model_copy(update={"image_prompts": image_prompts})


def replace_image_prompts(result: PromptResult, image_prompts: ImagePrompts) -> PromptResult:
    return result.model_copy(update={"image_prompts": image_prompts})


def merge_refined_prompts(
    result: PromptResult,
    refined: ImagePrompts,
    target_field: Optional[str] = None
) -> PromptResult:
    """
    Apply an AI-refined ImagePrompts.

    With ``target_field`` only that field is taken from ``refined``;
    without it the whole structure is replaced.
    """
    if target_field is None:
        return replace_image_prompts(result, refined)
    attr = _attr_for_wire(target_field)
    return merge_image_prompts(result, {attr: getattr(refined, attr)})


def update_camera_prompts(result: PromptResult, value: str) -> PromptResult:
    return result.model_copy(update={"camera_prompts": value})
