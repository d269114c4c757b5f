"""
Storyframe Storyboard - script bundles, groups, prompt results and the pure
operations over them.
"""

from .models import (
    BatchProgress,
    Group,
    ImagePrompts,
    PromptMap,
    PromptResult,
    ScriptBundle,
    Settings,
    SettingItem,
    Shot,
)
from .grouping import (
    build_groups,
    expected_group_count,
    missing_groups,
    range_label,
    shots_for_group,
    validate_partition,
    validate_shot_count,
)
from .export import Snapshot, build_snapshot, parse_import, render_text, to_json

__all__ = [
    "BatchProgress",
    "Group",
    "ImagePrompts",
    "PromptMap",
    "PromptResult",
    "ScriptBundle",
    "Settings",
    "SettingItem",
    "Shot",
    "build_groups",
    "expected_group_count",
    "missing_groups",
    "range_label",
    "shots_for_group",
    "validate_partition",
    "validate_shot_count",
    "Snapshot",
    "build_snapshot",
    "parse_import",
    "render_text",
    "to_json",
]
