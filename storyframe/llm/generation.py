"""
Storyboard Generator

Every upstream call goes through the RetryPolicy; every structured answer
goes through the ResponseSanitizer before it is handed back.
"""

from typing import List, Optional, Sequence

from storyframe.core.config import StoryframeConfig, get_config
from storyframe.core.constants import (
    DEFAULT_MODEL,
    MEDIA_ANALYSIS_MODEL,
    ModelChoice,
    SettingKind,
)
from storyframe.core.exceptions import (
    BriefValidationError,
    BundleValidationError,
    SanitizationError,
)
from storyframe.core.logging_config import get_logger
from storyframe.core.retry import RetryConfig, RetryPolicy
from storyframe.storyboard.grouping import validate_partition, validate_shot_count
from storyframe.storyboard.models import (
    Group,
    ImagePrompts,
    PromptResult,
    ScriptBundle,
    Settings,
    Shot,
)
from . import prompts
from .providers import JSON_MIME_TYPE, BaseLLMProvider, MediaItem, create_provider
from .sanitizer import ResponseSanitizer

logger = get_logger("llm.generation")

SCRIPT_TEMPERATURE = 0.8
EDIT_TEMPERATURE = 0.7


def retry_policy_from_config(config: StoryframeConfig, **kwargs) -> RetryPolicy:
    """Build the upstream RetryPolicy from pipeline retry settings."""
    settings = config.pipeline.retry
    return RetryPolicy(
        RetryConfig(
            max_retries=settings.max_retries,
            base_delay=settings.base_delay,
            exponential_base=settings.exponential_base,
        ),
        **kwargs
    )


class StoryboardGenerator:
    """
    Script, prompt and media-analysis calls against the generation service.

    Args:
        provider: Text/multimodal backend; built from config when omitted.
        config: Storyframe configuration; the global one when omitted.
        retry_policy: Wraps each upstream call.
        sanitizer: Validates structured answers.
        model: Model used for script and prompt work.
    """

    def __init__(
        self,
        provider: Optional[BaseLLMProvider] = None,
        config: Optional[StoryframeConfig] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sanitizer: Optional[ResponseSanitizer] = None,
        model: str = None
    ):
        self.config = config or get_config()
        self.provider = provider or create_provider(self.config.llm)
        self.retry_policy = retry_policy or retry_policy_from_config(self.config)
        self.sanitizer = sanitizer or ResponseSanitizer()
        self.model = model or self.config.llm.model or DEFAULT_MODEL

    @property
    def chunk_size(self) -> int:
        return self.config.pipeline.chunk_size

    def set_model(self, model) -> None:
        """Switch the model used for script and prompt work."""
        if isinstance(model, ModelChoice):
            model = model.value
        self.model = ModelChoice(model).value
        logger.info(f"Generation model set to {self.model}")

    async def _call(
        self,
        prompt: str,
        json_response: bool = True,
        temperature: float = EDIT_TEMPERATURE,
        media: Sequence[MediaItem] = (),
        model: str = None
    ) -> str:
        return await self.retry_policy.call(
            self.provider.generate,
            prompt,
            system_prompt=prompts.SYSTEM_INSTRUCTION if json_response else "",
            temperature=temperature,
            max_tokens=self.config.llm.max_tokens,
            media=media,
            response_mime_type=JSON_MIME_TYPE if json_response else None,
            model=model or self.model,
        )

    def _checked_bundle(self, raw: str, shot_count: int) -> ScriptBundle:
        bundle = self.sanitizer.parse(raw, ScriptBundle)
        if len(bundle.script) != shot_count:
            raise SanitizationError(
                f"expected {shot_count} shots, got {len(bundle.script)}",
                raw_text=raw,
                expected="ScriptBundle"
            )
        try:
            validate_partition(bundle, self.chunk_size)
        except BundleValidationError as e:
            raise SanitizationError(e.message, raw_text=raw, expected="ScriptBundle")
        return bundle

    # =========================================================================
    # SCRIPT
    # =========================================================================

    async def generate_script(self, brief: str, shot_count: int) -> ScriptBundle:
        """
        Generate a complete ScriptBundle from a creative brief.

        Raises:
            BriefValidationError: Empty brief or bad shot count, before any call.
            SanitizationError: The answer isn't a well-formed bundle with
                exactly ``shot_count`` shots.
        """
        if not brief or not brief.strip():
            raise BriefValidationError("brief is empty")
        validate_shot_count(shot_count, self.chunk_size)

        logger.info(f"Generating {shot_count}-shot script with {self.model}")
        raw = await self._call(
            prompts.build_script_prompt(brief.strip(), shot_count),
            temperature=SCRIPT_TEMPERATURE
        )
        return self._checked_bundle(raw, shot_count)

    async def parse_document(self, data: bytes, mime_type: str, shot_count: int) -> ScriptBundle:
        """Convert an uploaded script or outline (PDF/text) into a ScriptBundle."""
        if not data:
            raise BriefValidationError("document is empty")
        validate_shot_count(shot_count, self.chunk_size)

        logger.info(f"Parsing {mime_type} document into {shot_count} shots")
        raw = await self._call(
            prompts.build_document_prompt(shot_count),
            media=[MediaItem(data=data, mime_type=mime_type)],
            model=MEDIA_ANALYSIS_MODEL
        )
        return self._checked_bundle(raw, shot_count)

    async def refine_script(
        self,
        script: List[Shot],
        instruction: str,
        shot_id: Optional[int] = None
    ) -> List[Shot]:
        """Rewrite the script following ``instruction``; returns the full script."""
        raw = await self._call(prompts.build_refine_script_prompt(script, instruction, shot_id))
        return self.sanitizer.parse(raw, List[Shot], key="script")

    # =========================================================================
    # PROMPTS
    # =========================================================================

    async def generate_prompts(
        self,
        group: Group,
        shots: List[Shot],
        settings: Settings,
        reference_image: Optional[MediaItem] = None
    ) -> PromptResult:
        """Generate the image and camera prompts for one group."""
        media = [reference_image] if reference_image else []
        raw = await self._call(
            prompts.build_group_prompt(group, shots, settings, has_reference_image=bool(media)),
            media=media
        )
        result = self.sanitizer.parse(raw, PromptResult)
        if result.group_id != group.id:
            logger.debug(f"Model answered groupId {result.group_id} for group {group.id}")
            result = result.model_copy(update={"group_id": group.id})
        return result

    async def refine_prompt(
        self,
        image_prompts: ImagePrompts,
        instruction: str,
        target_field: Optional[str] = None
    ) -> ImagePrompts:
        """Rewrite image prompts following ``instruction``; returns the full structure."""
        raw = await self._call(
            prompts.build_refine_prompt_prompt(image_prompts, instruction, target_field)
        )
        return self.sanitizer.parse(raw, ImagePrompts)

    # =========================================================================
    # MEDIA ANALYSIS
    # =========================================================================

    async def idea_from_media(self, media: Sequence[MediaItem]) -> str:
        """Reverse-engineer a creative brief from images and/or videos."""
        media = list(media)
        if not media:
            raise BriefValidationError("no media to analyze")
        has_video = any(item.is_video for item in media)
        text = await self._call(
            prompts.build_media_idea_prompt(len(media), has_video),
            json_response=False,
            media=media,
            model=MEDIA_ANALYSIS_MODEL
        )
        return (text or "").strip()

    async def prompt_from_image(self, data: bytes, mime_type: str, kind) -> str:
        """Write a character or scene image prompt from a reference picture."""
        kind = SettingKind(kind.value if isinstance(kind, SettingKind) else kind)
        text = await self._call(
            prompts.image_prompt_instruction(kind),
            json_response=False,
            media=[MediaItem(data=data, mime_type=mime_type)],
            model=MEDIA_ANALYSIS_MODEL
        )
        return (text or "").strip()


__all__ = ["MediaItem", "StoryboardGenerator", "retry_policy_from_config"]
