"""
Storyboard Export / Import

JSON snapshots hold the bundle and every prompt result so a session can be
restored later; the plain-text rendering is for reading and sharing.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from storyframe.core.constants import (
    DEFAULT_MODEL,
    EXPORT_FORMAT_VERSION,
    EXPORT_PROJECT_LABEL,
    GROUP_CHUNK_SIZE,
)
from storyframe.core.exceptions import BundleValidationError
from storyframe.core.logging_config import get_logger
from .grouping import validate_partition
from .models import PromptMap, PromptResult, ScriptBundle

logger = get_logger("storyboard.export")

NOT_GENERATED_MARKER = "(prompts not generated)"


@dataclass
class Snapshot:
    """A restored export: bundle, prompt results and the meta block if any."""
    bundle: ScriptBundle
    prompts: PromptMap = field(default_factory=dict)
    meta: Optional[Dict[str, Any]] = None


def build_snapshot(
    bundle: ScriptBundle,
    prompts: PromptMap,
    model: str = DEFAULT_MODEL,
    date: datetime = None
) -> Dict[str, Any]:
    """Build the export structure with wire names and string group keys."""
    date = date or datetime.now()
    return {
        "meta": {
            "project": EXPORT_PROJECT_LABEL,
            "date": date.isoformat(),
            "model": model,
            "version": EXPORT_FORMAT_VERSION,
        },
        "storyboard": bundle.to_wire(),
        "prompts": {
            str(group_id): result.to_wire()
            for group_id, result in sorted(prompts.items())
        },
    }


def to_json(bundle: ScriptBundle, prompts: PromptMap, model: str = DEFAULT_MODEL, **kwargs) -> str:
    return json.dumps(
        build_snapshot(bundle, prompts, model=model, **kwargs),
        indent=2,
        ensure_ascii=False
    )


def parse_import(
    data: Union[str, bytes, Dict[str, Any]],
    chunk_size: int = GROUP_CHUNK_SIZE
) -> Snapshot:
    """
    Restore a snapshot or a bare ScriptBundle.

    A snapshot is recognised by its "storyboard" key; anything with a
    "script" key at the top level is treated as a bare bundle.

    Raises:
        BundleValidationError: If the payload is unreadable, neither shape
            matches, the groups don't partition the script, or a prompt
            result points at a group the bundle doesn't have.
    """
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise BundleValidationError(f"not valid JSON: {e}")

    if not isinstance(data, dict):
        raise BundleValidationError("import must be a JSON object")

    if "storyboard" in data:
        raw_bundle = data["storyboard"]
        raw_prompts = data.get("prompts") or {}
        meta = data.get("meta")
    elif "script" in data:
        raw_bundle, raw_prompts, meta = data, {}, None
    else:
        raise BundleValidationError(
            "expected a snapshot or a script bundle", keys=sorted(data)
        )

    try:
        bundle = ScriptBundle.model_validate(raw_bundle)
        prompts = {}
        for key, raw in raw_prompts.items():
            result = PromptResult.model_validate(raw)
            prompts[int(key)] = result
    except (PydanticValidationError, ValueError, AttributeError) as e:
        raise BundleValidationError(f"malformed storyboard: {e}")

    validate_partition(bundle, chunk_size)

    group_ids = {group.id for group in bundle.groups}
    for key, result in prompts.items():
        if key != result.group_id or key not in group_ids:
            raise BundleValidationError(
                f"prompt result {key} does not match a group", group_id=result.group_id
            )

    logger.info(
        f"Imported {len(bundle.script)} shots, {len(bundle.groups)} groups, "
        f"{len(prompts)} prompt results"
    )
    return Snapshot(bundle=bundle, prompts=prompts, meta=meta)


def render_text(bundle: ScriptBundle, prompts: PromptMap) -> str:
    """Render settings then every group with its prompts, in order."""
    settings = bundle.settings
    lines = [
        "=== SETTINGS ===",
        f"Overview: {settings.overview}",
        f"Style: {settings.style}",
        "",
        "Characters:",
    ]
    for item in settings.characters:
        lines.append(f"- {item.name}: {item.description}")
        lines.append(f"  Prompt: {item.prompt}")
    lines.append("")
    lines.append("Scenes:")
    for item in settings.scenes:
        lines.append(f"- {item.name}: {item.description}")
        lines.append(f"  Prompt: {item.prompt}")

    for group in bundle.groups:
        lines.append("")
        lines.append(f"=== GROUP {group.id} (shots {group.range}) ===")
        lines.append(f"Narrative: {group.narrative}")
        result = prompts.get(group.id)
        if result is None:
            lines.append(NOT_GENERATED_MARKER)
            continue
        lines.append("Image prompts:")
        for name, value in result.image_prompts.ordered_items():
            lines.append(f"  {name}: {value}")
        lines.append(f"Camera prompts: {result.camera_prompts}")

    return "\n".join(lines) + "\n"
