"""
Director Session

Owns one storyboard project: the ScriptBundle, the prompt results keyed by
group id, the pipeline phase and the transient generation state (active
group, batch progress, last error). Frontends drive it through the command
methods and observe it through ``subscribe``.

A reset bumps the session epoch. Work started under an older epoch (an
in-flight script generation, a queue run, an AI refine) is discarded when it
finishes and never moves the phase.
"""

import asyncio
import uuid
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from storyframe.core.config import StoryframeConfig, get_config
from storyframe.core.constants import DEFAULT_SHOT_COUNT, SettingKind
from storyframe.core.exceptions import (
    BriefValidationError,
    EditError,
    IllegalStateError,
    IllegalTransitionError,
    ScriptGenerationError,
)
from storyframe.core.logging_config import get_logger
from storyframe.llm.generation import StoryboardGenerator
from storyframe.llm.providers import MediaItem
from storyframe.storyboard import editing
from storyframe.storyboard.export import build_snapshot, parse_import, render_text, to_json
from storyframe.storyboard.grouping import (
    missing_groups,
    shots_for_group,
    validate_partition,
    validate_shot_count,
)
from storyframe.storyboard.models import (
    BatchProgress,
    Group,
    ImagePrompts,
    PromptMap,
    PromptResult,
    ScriptBundle,
    Shot,
)
from .generation_queue import GenerationQueue, QueueRunResult
from .phase_machine import Phase, PipelinePhaseMachine

logger = get_logger("pipelines.session")


class SessionEvent(Enum):
    """Events a session publishes to subscribers."""
    PHASE = "phase"
    PROGRESS = "progress"
    ACTIVE_GROUP = "active_group"
    BUNDLE = "bundle"
    PROMPTS = "prompts"
    ERROR = "error"


class DirectorSession:
    """
    Orchestrates brief -> script -> prompts for one project.

    Args:
        generator: Generation service facade.
        config: Storyframe configuration; the global one when omitted.
        sleep: Awaitable sleep used for the pause between queue items.
        session_id: Identifier; a random one when omitted.
    """

    def __init__(
        self,
        generator: StoryboardGenerator,
        config: Optional[StoryframeConfig] = None,
        sleep: Callable[[float], Any] = asyncio.sleep,
        session_id: Optional[str] = None
    ):
        self.id = session_id or uuid.uuid4().hex[:12]
        self.generator = generator
        self.config = config or get_config()
        self._sleep = sleep

        self.machine = PipelinePhaseMachine()
        self.machine.add_listener(self._on_phase_change)

        self.bundle: Optional[ScriptBundle] = None
        self.prompts: PromptMap = {}
        self.active_group_id: Optional[int] = None
        self.progress: Optional[BatchProgress] = None
        self.last_error: Optional[str] = None
        self.reference_images: Dict[int, MediaItem] = {}

        self._generating_group_id: Optional[int] = None
        self._queue: Optional[GenerationQueue] = None
        self._epoch = 0
        self._subscribers: Dict[SessionEvent, List[Callable]] = {event: [] for event in SessionEvent}

    # =========================================================================
    # OBSERVATION
    # =========================================================================

    @property
    def phase(self) -> Phase:
        return self.machine.phase

    @property
    def model(self) -> str:
        return self.generator.model

    @property
    def chunk_size(self) -> int:
        return self.config.pipeline.chunk_size

    def subscribe(self, event, callback: Callable) -> Callable[[], None]:
        """
        Register ``callback`` for ``event``; returns an unsubscribe function.

        PHASE callbacks receive (previous, current); PROGRESS a BatchProgress
        or None; ACTIVE_GROUP a group id or None; BUNDLE the ScriptBundle or
        None; PROMPTS the prompt mapping; ERROR the error text.
        """
        event = SessionEvent(event)
        self._subscribers[event].append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers[event]:
                self._subscribers[event].remove(callback)

        return unsubscribe

    def _emit(self, event: SessionEvent, *args) -> None:
        for callback in list(self._subscribers[event]):
            try:
                callback(*args)
            except Exception as e:
                logger.warning(f"{event.value} subscriber error: {e}")

    def _on_phase_change(self, previous: Phase, current: Phase) -> None:
        self._emit(SessionEvent.PHASE, previous, current)

    def _is_current(self, epoch: int) -> bool:
        return epoch == self._epoch

    def state(self) -> Dict[str, Any]:
        """JSON-ready view of the whole session."""
        return {
            "id": self.id,
            "phase": self.phase.value,
            "busy": self.phase.is_busy,
            "model": self.model,
            "bundle": self.bundle.to_wire() if self.bundle else None,
            "prompts": {str(gid): result.to_wire() for gid, result in sorted(self.prompts.items())},
            "active_group_id": self.active_group_id,
            "progress": self.progress.to_dict() if self.progress else None,
            "last_error": self.last_error,
        }

    # =========================================================================
    # SCRIPT STAGE
    # =========================================================================

    async def submit_brief(self, brief: str, shot_count: int = DEFAULT_SHOT_COUNT) -> Optional[ScriptBundle]:
        """
        Generate a ScriptBundle from a brief.

        Returns the bundle, or None when a reset superseded the request.

        Raises:
            BriefValidationError: Before any state change or upstream call.
            IllegalTransitionError: If the session isn't idle.
            ScriptGenerationError: Generation failed; the session is idle
                again with ``last_error`` set.
        """
        if not brief or not brief.strip():
            raise BriefValidationError("brief is empty")
        validate_shot_count(shot_count, self.chunk_size)

        return await self._generate_bundle(
            lambda: self.generator.generate_script(brief.strip(), shot_count),
            reason="brief submitted"
        )

    async def import_document(
        self,
        data: bytes,
        mime_type: str,
        shot_count: int = DEFAULT_SHOT_COUNT
    ) -> Optional[ScriptBundle]:
        """Convert an uploaded script/outline document; flows like a brief."""
        if not data:
            raise BriefValidationError("document is empty")
        validate_shot_count(shot_count, self.chunk_size)
        return await self._generate_bundle(
            lambda: self.generator.parse_document(data, mime_type, shot_count),
            reason=f"{mime_type} document imported"
        )

    async def _generate_bundle(self, produce: Callable, reason: str) -> Optional[ScriptBundle]:
        self.machine.transition(Phase.GENERATING_SCRIPT, reason=reason)
        epoch = self._epoch
        self.last_error = None

        try:
            bundle = await produce()
        except Exception as e:
            if not self._is_current(epoch):
                logger.info(f"Discarding failed script generation from a reset session: {e}")
                return None
            self.last_error = str(e)
            logger.error(f"Script generation failed: {e}")
            self.machine.transition(Phase.IDLE, reason="script generation failed")
            self._emit(SessionEvent.ERROR, self.last_error)
            raise ScriptGenerationError(f"Script generation failed: {e}") from e

        if not self._is_current(epoch):
            logger.info("Discarding script generated before a reset")
            return None

        self._set_bundle(bundle, prompts={})
        self.machine.transition(Phase.REVIEWING_SCRIPT, reason="script generated")
        return bundle

    def import_snapshot(self, data) -> ScriptBundle:
        """
        Restore an exported snapshot or a bare ScriptBundle.

        Raises:
            BundleValidationError: Malformed data, or groups that don't
                partition the script.
            IllegalTransitionError: If the session isn't idle.
        """
        self._require_phase(Phase.IDLE, Phase.REVIEWING_SCRIPT)

        snapshot = parse_import(data, self.chunk_size)
        self.last_error = None
        self._set_bundle(snapshot.bundle, prompts=snapshot.prompts)
        self.machine.transition(Phase.REVIEWING_SCRIPT, reason="snapshot imported")
        return snapshot.bundle

    def _set_bundle(self, bundle: Optional[ScriptBundle], prompts: Optional[PromptMap] = None) -> None:
        self.bundle = bundle
        self._emit(SessionEvent.BUNDLE, bundle)
        if prompts is not None:
            self.prompts = dict(prompts)
            self._emit(SessionEvent.PROMPTS, dict(self.prompts))

    def _require_phase(self, required: Phase, target: Phase) -> None:
        # Several commands share a table edge but only one source phase
        if self.phase != required:
            raise IllegalTransitionError(self.phase.value, target.value)

    def _require_bundle(self) -> ScriptBundle:
        if self.bundle is None or self.phase in (Phase.IDLE, Phase.GENERATING_SCRIPT):
            raise IllegalStateError(f"No storyboard to edit in phase {self.phase.value}")
        return self.bundle

    # =========================================================================
    # PROMPT STAGE
    # =========================================================================

    async def confirm_script(self) -> QueueRunResult:
        """
        Accept the script and generate prompts for every group lacking one.

        With nothing missing the session moves straight to prompt review; no
        progress is created and the active group is left alone.
        """
        self._require_phase(Phase.REVIEWING_SCRIPT, Phase.GENERATING_PROMPTS)

        missing = missing_groups(self.bundle.groups, self.prompts)
        if not missing:
            self.machine.transition(Phase.REVIEWING_PROMPTS, reason="all groups already generated")
            return QueueRunResult()

        self.machine.transition(
            Phase.GENERATING_PROMPTS, reason=f"{len(missing)} group(s) missing"
        )
        return await self._run_queue(missing)

    async def regenerate_all(self) -> QueueRunResult:
        """Discard every prompt result and generate all groups again."""
        self._require_phase(Phase.REVIEWING_PROMPTS, Phase.GENERATING_PROMPTS)
        self.machine.transition(Phase.GENERATING_PROMPTS, reason="regenerate all")
        self.prompts = {}
        self._emit(SessionEvent.PROMPTS, {})
        return await self._run_queue(list(self.bundle.groups))

    async def regenerate_group(self, group_id: int) -> QueueRunResult:
        """Generate one group again, keeping every other result."""
        self._require_phase(Phase.REVIEWING_PROMPTS, Phase.GENERATING_PROMPTS)
        group = self._find_group(group_id)
        self.machine.transition(Phase.GENERATING_PROMPTS, reason=f"regenerate group {group_id}")
        return await self._run_queue([group])

    def _find_group(self, group_id: int) -> Group:
        for group in self._require_bundle().groups:
            if group.id == group_id:
                return group
        raise EditError("group", group_id)

    async def _run_queue(self, groups: List[Group]) -> QueueRunResult:
        epoch = self._epoch

        def on_active(group_id: int) -> None:
            if self._is_current(epoch):
                self.active_group_id = group_id
                self._emit(SessionEvent.ACTIVE_GROUP, group_id)

        def on_progress(progress: Optional[BatchProgress]) -> None:
            if self._is_current(epoch):
                self.progress = progress
                self._emit(SessionEvent.PROGRESS, progress)

        def on_result(group_id: int, result: PromptResult) -> None:
            if self._is_current(epoch):
                self.prompts[group_id] = result
                self._emit(SessionEvent.PROMPTS, dict(self.prompts))

        async def generate(group: Group) -> PromptResult:
            if not self._is_current(epoch):
                raise IllegalStateError("Session was reset")
            self._generating_group_id = group.id
            try:
                bundle = self.bundle
                return await self.generator.generate_prompts(
                    group,
                    shots_for_group(bundle.script, group.id, self.chunk_size),
                    bundle.settings,
                    reference_image=self.reference_images.get(group.id)
                )
            finally:
                if self._is_current(epoch):
                    self._generating_group_id = None

        self._queue = GenerationQueue(
            generate,
            item_delay=self.config.pipeline.item_delay_seconds,
            sleep=self._sleep,
            on_active=on_active,
            on_progress=on_progress,
            on_result=on_result,
        )
        outcome = None
        try:
            outcome = await self._queue.run(groups)
        finally:
            if self._is_current(epoch):
                self._finish_run(outcome)

        if not self._is_current(epoch):
            logger.info("Discarding generation run from before a reset")
        return outcome

    def _finish_run(self, outcome: Optional[QueueRunResult]) -> None:
        if outcome is None:
            self.last_error = "Generation run was interrupted"
            self._emit(SessionEvent.ERROR, self.last_error)
        elif outcome.failures:
            self.last_error = (
                f"Generation failed for group(s) {', '.join(map(str, outcome.failed_group_ids))}"
            )
            self._emit(SessionEvent.ERROR, self.last_error)
        self._generating_group_id = None
        self.machine.transition(Phase.REVIEWING_PROMPTS, reason="generation run finished")

    def select_group(self, group_id: int) -> None:
        """Make ``group_id`` the active group."""
        self._find_group(group_id)
        self.active_group_id = group_id
        self._emit(SessionEvent.ACTIVE_GROUP, group_id)

    def set_reference_image(self, group_id: int, image: Optional[MediaItem]) -> None:
        """Attach (or with None, detach) a reference image used for a group's prompts."""
        self._find_group(group_id)
        if image is None:
            self.reference_images.pop(group_id, None)
        else:
            self.reference_images[group_id] = image

    def set_model(self, model) -> None:
        self.generator.set_model(model)

    # =========================================================================
    # RESET
    # =========================================================================

    def reset(self) -> None:
        """Discard everything and return to idle; in-flight work is orphaned."""
        self._epoch += 1
        self.machine.reset()
        self.bundle = None
        self.prompts = {}
        self.active_group_id = None
        self.progress = None
        self.last_error = None
        self.reference_images = {}
        self._generating_group_id = None
        self._queue = None

        self._emit(SessionEvent.BUNDLE, None)
        self._emit(SessionEvent.PROMPTS, {})
        self._emit(SessionEvent.ACTIVE_GROUP, None)
        self._emit(SessionEvent.PROGRESS, None)
        logger.info(f"Session {self.id} reset")

    # =========================================================================
    # SCRIPT AND SETTINGS EDITS
    # =========================================================================

    def _commit(self, bundle: ScriptBundle) -> ScriptBundle:
        self._set_bundle(bundle)
        return bundle

    def update_shot(self, shot_id: int, **fields: str) -> Shot:
        bundle = self._require_bundle()
        script = editing.update_shot(bundle.script, shot_id, **fields)
        self._commit(editing.replace_script(bundle, script))
        return next(shot for shot in script if shot.id == shot_id)

    async def refine_script(self, instruction: str, shot_id: Optional[int] = None) -> List[Shot]:
        """
        Rewrite the script with the generation service.

        With ``shot_id`` only that shot is taken from the answer. A whole-script
        answer must keep the shot ids so the groups still partition it.
        """
        bundle = self._require_bundle()
        if shot_id is not None:
            editing.update_shot(bundle.script, shot_id)
        epoch = self._epoch

        refined = await self.generator.refine_script(bundle.script, instruction, shot_id)
        if not self._is_current(epoch):
            return refined

        bundle = self._require_bundle()
        if shot_id is not None:
            script = editing.merge_refined_shot(bundle.script, refined, shot_id)
        else:
            script = refined
        updated = editing.replace_script(bundle, script)
        validate_partition(updated, self.chunk_size)
        self._commit(updated)
        return script

    def update_setting_item(self, kind, index: int, field: str, value: str) -> None:
        bundle = self._require_bundle()
        settings = editing.update_setting_item(bundle.settings, kind, index, field, value)
        self._commit(editing.replace_settings(bundle, settings))

    def add_setting_item(self, kind) -> int:
        """Append a placeholder character or scene; returns its index."""
        bundle = self._require_bundle()
        settings = editing.add_setting_item(bundle.settings, kind)
        self._commit(editing.replace_settings(bundle, settings))
        kind = SettingKind(kind.value if isinstance(kind, SettingKind) else kind)
        items = settings.characters if kind is SettingKind.CHARACTER else settings.scenes
        return len(items) - 1

    def delete_setting_item(self, kind, index: int) -> None:
        bundle = self._require_bundle()
        settings = editing.delete_setting_item(bundle.settings, kind, index)
        self._commit(editing.replace_settings(bundle, settings))

    def update_global_setting(self, field: str, value: str) -> None:
        bundle = self._require_bundle()
        settings = editing.update_global_setting(bundle.settings, field, value)
        self._commit(editing.replace_settings(bundle, settings))

    def apply_style_preset(self, preset: str) -> None:
        bundle = self._require_bundle()
        settings = editing.apply_style_preset(bundle.settings, preset)
        self._commit(editing.replace_settings(bundle, settings))

    def update_global_settings(
        self,
        overview: Optional[str] = None,
        style: Optional[str] = None,
        preset: Optional[str] = None
    ) -> None:
        """Apply overview, style or preset together; nothing is kept if any is rejected."""
        bundle = self._require_bundle()
        settings = bundle.settings
        if overview is not None:
            settings = editing.update_global_setting(settings, "overview", overview)
        if preset is not None:
            settings = editing.apply_style_preset(settings, preset)
        elif style is not None:
            settings = editing.update_global_setting(settings, "style", style)
        self._commit(editing.replace_settings(bundle, settings))

    async def prompt_from_image(self, kind, index: int, data: bytes, mime_type: str) -> str:
        """Write a setting item's prompt from an uploaded reference image."""
        bundle = self._require_bundle()
        # Validates kind and index before the upstream call
        editing.update_setting_item(bundle.settings, kind, index, "prompt", "")
        epoch = self._epoch

        prompt = await self.generator.prompt_from_image(data, mime_type, kind)
        if self._is_current(epoch):
            self.update_setting_item(kind, index, "prompt", prompt)
        return prompt

    async def idea_from_media(self, media: Sequence[MediaItem]) -> str:
        """Draft a brief from uploaded media; session state is untouched."""
        return await self.generator.idea_from_media(media)

    # =========================================================================
    # PROMPT EDITS
    # =========================================================================

    def _editable_result(self, group_id: int) -> PromptResult:
        if self.phase == Phase.GENERATING_PROMPTS and self._generating_group_id == group_id:
            raise IllegalStateError(f"Group {group_id} is being generated")
        try:
            return self.prompts[group_id]
        except KeyError:
            raise EditError("prompt result", group_id)

    def _store_result(self, result: PromptResult) -> PromptResult:
        self.prompts[result.group_id] = result
        self._emit(SessionEvent.PROMPTS, dict(self.prompts))
        return result

    def update_image_prompt_field(self, group_id: int, field: str, value: str) -> PromptResult:
        result = self._editable_result(group_id)
        return self._store_result(editing.update_image_prompt_field(result, field, value))

    def merge_image_prompts(self, group_id: int, partial: Dict[str, str]) -> PromptResult:
        result = self._editable_result(group_id)
        return self._store_result(editing.merge_image_prompts(result, partial))

    def replace_image_prompts(self, group_id: int, image_prompts: ImagePrompts) -> PromptResult:
        result = self._editable_result(group_id)
        return self._store_result(editing.replace_image_prompts(result, image_prompts))

    def update_camera_prompts(self, group_id: int, value: str) -> PromptResult:
        result = self._editable_result(group_id)
        return self._store_result(editing.update_camera_prompts(result, value))

    async def refine_prompt(
        self,
        group_id: int,
        instruction: str,
        target_field: Optional[str] = None
    ) -> PromptResult:
        """AI-rewrite a group's image prompts; with ``target_field`` only that field changes."""
        result = self._editable_result(group_id)
        if target_field is not None:
            editing.update_image_prompt_field(result, target_field, "")
        epoch = self._epoch

        refined = await self.generator.refine_prompt(result.image_prompts, instruction, target_field)
        if not self._is_current(epoch):
            return result

        current = self._editable_result(group_id)
        return self._store_result(editing.merge_refined_prompts(current, refined, target_field))

    # =========================================================================
    # EXPORT
    # =========================================================================

    def export_json_data(self) -> Dict[str, Any]:
        """Snapshot structure: meta, storyboard and prompts keyed by group id."""
        return build_snapshot(self._require_bundle(), self.prompts, model=self.model)

    def export_json(self) -> str:
        return to_json(self._require_bundle(), self.prompts, model=self.model)

    def export_text(self) -> str:
        return render_text(self._require_bundle(), self.prompts)
