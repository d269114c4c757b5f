"""Sessions router for the Storyframe API.

One DirectorSession per project, held in an in-process registry. Generation
commands await completion and answer with the resulting session state.
"""

import base64
import binascii
from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field
from slowapi import Limiter
from slowapi.util import get_remote_address

from storyframe.core.constants import (
    DEFAULT_SHOT_COUNT,
    IMAGE_PROMPT_FIELDS,
    SHOT_COUNT_OPTIONS,
    STYLE_PRESETS,
    ModelChoice,
    SettingKind,
)
from storyframe.core.logging_config import get_logger
from storyframe.llm.generation import StoryboardGenerator
from storyframe.llm.providers import MediaItem
from storyframe.pipelines.generation_queue import QueueRunResult
from storyframe.pipelines.orchestrator import DirectorSession

logger = get_logger("api.sessions")

router = APIRouter()

# Rate limiter for endpoints that call the generation service
limiter = Limiter(key_func=get_remote_address)


class SessionRegistry:
    """In-process store of sessions keyed by id."""

    def __init__(
        self,
        generator_factory: Optional[Callable[[Optional[str]], StoryboardGenerator]] = None,
        session_kwargs: Optional[Dict[str, Any]] = None
    ):
        self.generator_factory = generator_factory or (lambda model: StoryboardGenerator(model=model))
        self.session_kwargs = session_kwargs or {}
        self._sessions: Dict[str, DirectorSession] = {}

    def create(self, model: Optional[str] = None) -> DirectorSession:
        session = DirectorSession(self.generator_factory(model), **self.session_kwargs)
        self._sessions[session.id] = session
        logger.info(f"Created session {session.id}")
        return session

    def get(self, session_id: str) -> DirectorSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")

    def delete(self, session_id: str) -> None:
        self.get(session_id)
        del self._sessions[session_id]


_registry: Optional[SessionRegistry] = None


def get_registry() -> SessionRegistry:
    """Shared registry; overridden in tests."""
    global _registry
    if _registry is None:
        _registry = SessionRegistry()
    return _registry


# =============================================================================
# REQUEST MODELS
# =============================================================================

class CreateSessionRequest(BaseModel):
    model: Optional[str] = None


class BriefRequest(BaseModel):
    brief: str
    shot_count: int = DEFAULT_SHOT_COUNT


class MediaPayload(BaseModel):
    data: str  # base64
    mime_type: str = "image/png"

    def to_media(self) -> MediaItem:
        try:
            return MediaItem(data=base64.b64decode(self.data, validate=True), mime_type=self.mime_type)
        except (binascii.Error, ValueError):
            raise HTTPException(status_code=400, detail="media data is not valid base64")


class DocumentRequest(MediaPayload):
    mime_type: str = "application/pdf"
    shot_count: int = DEFAULT_SHOT_COUNT


class IdeaRequest(BaseModel):
    media: List[MediaPayload]


class ImportRequest(BaseModel):
    data: Dict[str, Any]


class ResetRequest(BaseModel):
    confirm: bool = False


class ModelRequest(BaseModel):
    model: str


class ShotUpdate(BaseModel):
    description: Optional[str] = None
    voiceover: Optional[str] = None
    movement: Optional[str] = None


class ScriptRefineRequest(BaseModel):
    instruction: str
    shot_id: Optional[int] = None


class GlobalSettingsUpdate(BaseModel):
    overview: Optional[str] = None
    style: Optional[str] = None
    preset: Optional[str] = None


class SettingItemUpdate(BaseModel):
    field: str
    value: str


class PromptUpdate(BaseModel):
    image_prompts: Dict[str, str] = Field(default_factory=dict)
    camera_prompts: Optional[str] = None


class PromptRefineRequest(BaseModel):
    instruction: str
    target_field: Optional[str] = None


def _run_summary(outcome: QueueRunResult) -> Dict[str, Any]:
    return {
        "attempted": outcome.attempted,
        "succeeded": sorted(outcome.results),
        "failed": [failure.to_dict() for failure in outcome.failures],
    }


# =============================================================================
# SESSIONS
# =============================================================================

@router.get("/options")
async def get_options():
    """Choices offered by the UI."""
    return {
        "shot_counts": SHOT_COUNT_OPTIONS,
        "default_shot_count": DEFAULT_SHOT_COUNT,
        "style_presets": STYLE_PRESETS,
        "models": [choice.value for choice in ModelChoice],
        "setting_kinds": [kind.value for kind in SettingKind],
        "image_prompt_fields": IMAGE_PROMPT_FIELDS,
    }


@router.post("")
async def create_session(body: CreateSessionRequest, registry: SessionRegistry = Depends(get_registry)):
    session = registry.create(body.model)
    return session.state()


@router.get("/{session_id}")
async def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    return registry.get(session_id).state()


@router.delete("/{session_id}")
async def delete_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    registry.delete(session_id)
    return {"success": True}


@router.put("/{session_id}/model")
async def set_model(session_id: str, body: ModelRequest, registry: SessionRegistry = Depends(get_registry)):
    session = registry.get(session_id)
    try:
        session.set_model(body.model)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown model: {body.model}")
    return session.state()


@router.post("/{session_id}/reset")
async def reset_session(session_id: str, body: ResetRequest, registry: SessionRegistry = Depends(get_registry)):
    """Discard the storyboard; requires explicit confirmation."""
    if not body.confirm:
        raise HTTPException(status_code=400, detail="Reset discards all work; send confirm=true")
    session = registry.get(session_id)
    session.reset()
    return session.state()


# =============================================================================
# SCRIPT STAGE
# =============================================================================

@router.post("/{session_id}/brief")
@limiter.limit("10/minute")
async def submit_brief(
    request: Request,
    session_id: str,
    body: BriefRequest,
    registry: SessionRegistry = Depends(get_registry)
):
    session = registry.get(session_id)
    await session.submit_brief(body.brief, body.shot_count)
    return session.state()


@router.post("/{session_id}/idea")
@limiter.limit("10/minute")
async def idea_from_media(
    request: Request,
    session_id: str,
    body: IdeaRequest,
    registry: SessionRegistry = Depends(get_registry)
):
    """Draft a brief from uploaded images or videos."""
    session = registry.get(session_id)
    brief = await session.idea_from_media([item.to_media() for item in body.media])
    return {"brief": brief}


@router.post("/{session_id}/document")
@limiter.limit("10/minute")
async def import_document(
    request: Request,
    session_id: str,
    body: DocumentRequest,
    registry: SessionRegistry = Depends(get_registry)
):
    session = registry.get(session_id)
    media = body.to_media()
    await session.import_document(media.data, media.mime_type, body.shot_count)
    return session.state()


@router.post("/{session_id}/import")
async def import_snapshot(session_id: str, body: ImportRequest, registry: SessionRegistry = Depends(get_registry)):
    session = registry.get(session_id)
    session.import_snapshot(body.data)
    return session.state()


@router.patch("/{session_id}/shots/{shot_id}")
async def update_shot(
    session_id: str,
    shot_id: int,
    body: ShotUpdate,
    registry: SessionRegistry = Depends(get_registry)
):
    session = registry.get(session_id)
    session.update_shot(shot_id, **body.model_dump(exclude_none=True))
    return session.state()


@router.post("/{session_id}/script/refine")
@limiter.limit("10/minute")
async def refine_script(
    request: Request,
    session_id: str,
    body: ScriptRefineRequest,
    registry: SessionRegistry = Depends(get_registry)
):
    session = registry.get(session_id)
    await session.refine_script(body.instruction, body.shot_id)
    return session.state()


@router.patch("/{session_id}/settings")
async def update_global_settings(
    session_id: str,
    body: GlobalSettingsUpdate,
    registry: SessionRegistry = Depends(get_registry)
):
    session = registry.get(session_id)
    session.update_global_settings(overview=body.overview, style=body.style, preset=body.preset)
    return session.state()


@router.post("/{session_id}/settings/{kind}")
async def add_setting_item(session_id: str, kind: SettingKind, registry: SessionRegistry = Depends(get_registry)):
    session = registry.get(session_id)
    index = session.add_setting_item(kind)
    return {"index": index, "state": session.state()}


@router.patch("/{session_id}/settings/{kind}/{index}")
async def update_setting_item(
    session_id: str,
    kind: SettingKind,
    index: int,
    body: SettingItemUpdate,
    registry: SessionRegistry = Depends(get_registry)
):
    session = registry.get(session_id)
    session.update_setting_item(kind, index, body.field, body.value)
    return session.state()


@router.delete("/{session_id}/settings/{kind}/{index}")
async def delete_setting_item(
    session_id: str,
    kind: SettingKind,
    index: int,
    registry: SessionRegistry = Depends(get_registry)
):
    session = registry.get(session_id)
    session.delete_setting_item(kind, index)
    return session.state()


@router.post("/{session_id}/settings/{kind}/{index}/image-prompt")
@limiter.limit("10/minute")
async def prompt_from_image(
    request: Request,
    session_id: str,
    kind: SettingKind,
    index: int,
    body: MediaPayload,
    registry: SessionRegistry = Depends(get_registry)
):
    """Reverse-engineer a character or scene prompt from an uploaded picture."""
    session = registry.get(session_id)
    media = body.to_media()
    prompt = await session.prompt_from_image(kind, index, media.data, media.mime_type)
    return {"prompt": prompt, "state": session.state()}


# =============================================================================
# PROMPT STAGE
# =============================================================================

@router.post("/{session_id}/confirm")
@limiter.limit("10/minute")
async def confirm_script(
    request: Request,
    session_id: str,
    registry: SessionRegistry = Depends(get_registry)
):
    session = registry.get(session_id)
    outcome = await session.confirm_script()
    return {"run": _run_summary(outcome), "state": session.state()}


@router.post("/{session_id}/regenerate")
@limiter.limit("10/minute")
async def regenerate_all(
    request: Request,
    session_id: str,
    registry: SessionRegistry = Depends(get_registry)
):
    session = registry.get(session_id)
    outcome = await session.regenerate_all()
    return {"run": _run_summary(outcome), "state": session.state()}


@router.post("/{session_id}/groups/{group_id}/regenerate")
@limiter.limit("10/minute")
async def regenerate_group(
    request: Request,
    session_id: str,
    group_id: int,
    registry: SessionRegistry = Depends(get_registry)
):
    session = registry.get(session_id)
    outcome = await session.regenerate_group(group_id)
    return {"run": _run_summary(outcome), "state": session.state()}


@router.post("/{session_id}/groups/{group_id}/select")
async def select_group(session_id: str, group_id: int, registry: SessionRegistry = Depends(get_registry)):
    session = registry.get(session_id)
    session.select_group(group_id)
    return session.state()


@router.put("/{session_id}/groups/{group_id}/reference-image")
async def set_reference_image(
    session_id: str,
    group_id: int,
    body: MediaPayload,
    registry: SessionRegistry = Depends(get_registry)
):
    session = registry.get(session_id)
    session.set_reference_image(group_id, body.to_media())
    return {"success": True}


@router.delete("/{session_id}/groups/{group_id}/reference-image")
async def clear_reference_image(session_id: str, group_id: int, registry: SessionRegistry = Depends(get_registry)):
    session = registry.get(session_id)
    session.set_reference_image(group_id, None)
    return {"success": True}


@router.patch("/{session_id}/prompts/{group_id}")
async def update_prompts(
    session_id: str,
    group_id: int,
    body: PromptUpdate,
    registry: SessionRegistry = Depends(get_registry)
):
    session = registry.get(session_id)
    if body.image_prompts:
        session.merge_image_prompts(group_id, body.image_prompts)
    if body.camera_prompts is not None:
        session.update_camera_prompts(group_id, body.camera_prompts)
    return session.state()


@router.post("/{session_id}/prompts/{group_id}/refine")
@limiter.limit("10/minute")
async def refine_prompt(
    request: Request,
    session_id: str,
    group_id: int,
    body: PromptRefineRequest,
    registry: SessionRegistry = Depends(get_registry)
):
    session = registry.get(session_id)
    await session.refine_prompt(group_id, body.instruction, body.target_field)
    return session.state()


# =============================================================================
# EXPORT
# =============================================================================

@router.get("/{session_id}/export.json")
async def export_json(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = registry.get(session_id)
    return JSONResponse(
        content=session.export_json_data(),
        headers={"Content-Disposition": f'attachment; filename="storyboard_{session.id}.json"'}
    )


@router.get("/{session_id}/export.txt")
async def export_text(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = registry.get(session_id)
    return PlainTextResponse(
        session.export_text(),
        headers={"Content-Disposition": f'attachment; filename="storyboard_{session.id}.txt"'}
    )
