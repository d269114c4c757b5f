"""
Prompt templates for the generation service.

Builders return plain strings; the generator pairs them with the system
instruction and the expected response shape.
"""

import json
from typing import List, Optional, Sequence

from storyframe.core.constants import GROUP_CHUNK_SIZE, IMAGE_PROMPT_FIELDS, SettingKind
from storyframe.storyboard.models import Group, ImagePrompts, Settings, Shot

SYSTEM_INSTRUCTION = """
You are a professional video storyboard director. You turn creative ideas
into shot-by-shot scripts and then into image and camera prompts for AI
image and video generation tools.

Always answer with valid JSON only when JSON is requested. No markdown,
no commentary.
""".strip()

STORYBOARD_SHAPE = """
{
  "script": [{"id": 1, "description": "...", "voiceover": "...", "movement": "..."}],
  "groups": [{"id": 1, "range": "1-4", "narrative": "..."}],
  "settings": {
    "overview": "...",
    "style": "...",
    "characters": [{"name": "...", "description": "...", "prompt": "..."}],
    "scenes": [{"name": "...", "description": "...", "prompt": "..."}]
  }
}
""".strip()

SHOT_FIELD_REQUIREMENT = (
    "2x2 grid storyboard layout, 4 separate frames, borderless collage, "
    "professional film production storyboard sheet, 16:9"
)

CAMERA_PROMPT_PREFIX = (
    "Generate video from the reference image, left to right, top to bottom. "
    "Sound effects and dialogue only, no music, no subtitles."
)

CHARACTER_IMAGE_PROMPT = """
Analyze this image and write one high-quality prompt for AI image generation.
Midjourney style, comma-separated keywords. It must describe a
character reference sheet: multiple views, full body (front, back), face
close-up and profile close-up, plus the exact appearance, clothing details, build, pose
and art style seen in the image. Return the prompt text only.
""".strip()

SCENE_IMAGE_PROMPT = """
Analyze this image and write one high-quality prompt for AI image generation.
Midjourney style, comma-separated keywords. It must describe the environment
in detail: architecture, spatial layout, lighting, materials, palette and
camera angle. Return the prompt text only.
""".strip()


def _chunking_rules(shot_count: int) -> str:
    return (
        f"Produce exactly {shot_count} shots with ids 1..{shot_count}. "
        f"If the material is thin, expand it with close-ups, action beats, "
        f"establishing shots and reaction shots until there are {shot_count}. "
        f"Group the shots {GROUP_CHUNK_SIZE} at a time into "
        f"{shot_count // GROUP_CHUNK_SIZE} groups with ids starting at 1 and "
        f'ranges like "1-{GROUP_CHUNK_SIZE}".'
    )


def build_script_prompt(brief: str, shot_count: int) -> str:
    """Prompt for turning a brief into a full ScriptBundle."""
    return f"""
Creative brief: {brief}

Tasks:
1. Write the shot-by-shot script. {_chunking_rules(shot_count)}
2. Describe the settings: a world overview, a detailed visual style
   (rendering, palette, lighting), every character that appears and every
   scene that appears. Each character and scene gets a visual description
   and an image-generation prompt (character sheets for characters).

Return JSON shaped like:
{STORYBOARD_SHAPE}
""".strip()


def build_document_prompt(shot_count: int) -> str:
    """Prompt for converting an attached script or outline document."""
    return f"""
The attached document holds a video script or a story outline. Convert it
into a structured storyboard.

- {_chunking_rules(shot_count)}
- Adapt an existing script to the shot count: expand a short one, condense
  a long one.
- Infer missing details such as camera movement from context.
- Extract the settings: overview, visual style, characters and scenes.

Return JSON shaped like:
{STORYBOARD_SHAPE}
""".strip()


def _settings_context(settings: Settings) -> str:
    characters = "\n".join(
        f"- {item.name}: {item.prompt}" for item in settings.characters
    ) or "- (none)"
    scenes = "\n".join(
        f"- {item.name}: {item.prompt}" for item in settings.scenes
    ) or "- (none)"
    return (
        f"Global visual style: {settings.style or 'cinematic, no special direction'}\n\n"
        f"Character library (reuse these descriptions verbatim when they appear):\n{characters}\n\n"
        f"Scene library (reuse these descriptions verbatim when they appear):\n{scenes}"
    )


def build_group_prompt(
    group: Group,
    shots: Sequence[Shot],
    settings: Settings,
    has_reference_image: bool = False
) -> str:
    """Prompt for one group's image and camera prompts."""
    shots_context = "\n".join(
        f"Shot {shot.id}:\n  - visual: {shot.description}\n"
        f"  - audio: {shot.voiceover}\n  - movement: {shot.movement}"
        for shot in shots
    )
    fields = ", ".join(f'"{name}"' for name in IMAGE_PROMPT_FIELDS)

    prompt = f"""
Write image and video prompts for storyboard group {group.id} (shots {group.range}).
Group narrative: {group.narrative}

{_settings_context(settings)}

Shots in this group:
{shots_context}

"imagePrompts" requirements:
1. Fields in exactly this order: {fields}.
2. "shot" must equal: "{SHOT_FIELD_REQUIREMENT}".
3. "subject" must read: "[short overall description] the {len(shots)} frames are:
   shot1: [...], shot2: [...], ..." with no empty frame descriptions.
4. The remaining fields must follow the global visual style.

"cameraPrompts" requirements:
1. Start with exactly: "{CAMERA_PROMPT_PREFIX}"
2. For every shot give the movement, the dialogue from the voiceover, and
   the transition: the last frame of the shot and the first frame of the next.

Return JSON: {{"groupId": {group.id}, "imagePrompts": {{...}}, "cameraPrompts": "..."}}
""".strip()

    if has_reference_image:
        prompt += (
            "\n\nA reference image is attached for this group. Apply its "
            "composition, camera angle and visual style to the style/camera "
            "image prompt fields and to the camera prompts."
        )
    return prompt


def build_refine_script_prompt(
    script: Sequence[Shot],
    instruction: str,
    shot_id: Optional[int] = None
) -> str:
    current = json.dumps([shot.to_wire() for shot in script], indent=2, ensure_ascii=False)
    scope = (
        f"Change only shot {shot_id}; return every other shot unchanged."
        if shot_id is not None else
        "Apply global instructions to every relevant shot; targeted ones only to their shot."
    )
    return f"""
Current storyboard script:
{current}

Edit instruction: {instruction}

{scope} Keep shot ids and the shot count unless told otherwise, and keep
the voiceover and movement fields on every shot.

Return JSON: {{"script": [...]}}
""".strip()


def build_refine_prompt_prompt(
    image_prompts: ImagePrompts,
    instruction: str,
    target_field: Optional[str] = None
) -> str:
    current = json.dumps(image_prompts.to_wire(), indent=2, ensure_ascii=False)
    focus = (
        f'\nFocus the change on the "{target_field}" field while keeping the whole consistent.'
        if target_field else ""
    )
    return f"""
Current image prompts:
{current}

Edit instruction: {instruction}{focus}

Change only what the instruction needs and keep the JSON structure identical.
Return the complete JSON object.
""".strip()


def build_media_idea_prompt(count: int, has_video: bool) -> str:
    """Prompt for turning uploaded media into a creative brief."""
    if count == 1 and has_video:
        return (
            "Analyze this video in detail: content, style, camera work, lighting "
            "and mood. Extract any subtitles, dialogue or narration word for word. "
            "Turn it into a creative brief for a video covering genre, visual "
            "style, core story, emotional tone and the extracted lines."
        )
    if count == 1:
        return (
            "Analyze this image in detail: content, composition, lighting, colour "
            "and art style. Extract any visible text such as speech bubbles or "
            "slogans. Turn it into a creative brief for a video covering setting, "
            "a possible story, visual style suggestions and the extracted text."
        )
    return (
        f"Analyze these {count} media files in order; they form one visual "
        "sequence or style reference. Describe the shared style, palette, "
        "lighting and composition, infer the narrative progression between them, "
        "and extract any subtitles or on-screen text. Combine everything into one "
        "coherent creative brief covering genre, key visuals, story outline with "
        "dialogue and emotional tone."
    )


def image_prompt_instruction(kind: SettingKind) -> str:
    return CHARACTER_IMAGE_PROMPT if kind is SettingKind.CHARACTER else SCENE_IMAGE_PROMPT


__all__: List[str] = [
    "SYSTEM_INSTRUCTION",
    "build_script_prompt",
    "build_document_prompt",
    "build_group_prompt",
    "build_refine_script_prompt",
    "build_refine_prompt_prompt",
    "build_media_idea_prompt",
    "image_prompt_instruction",
]
