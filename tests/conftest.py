"""
Pytest Configuration and Fixtures

Shared fixtures for all tests.
"""

import json
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from storyframe.core.config import StoryframeConfig
from storyframe.core.constants import ModelChoice
from storyframe.core.retry import RetryPolicy
from storyframe.llm.generation import StoryboardGenerator
from storyframe.llm.providers import BaseLLMProvider
from storyframe.storyboard.grouping import build_groups
from storyframe.storyboard.models import (
    ImagePrompts,
    PromptResult,
    ScriptBundle,
    Settings,
    SettingItem,
    Shot,
)


def make_script(shot_count: int) -> List[Shot]:
    return [
        Shot(
            id=i,
            description=f"Shot {i} description",
            voiceover=f"Line {i}",
            movement="Slow dolly in",
        )
        for i in range(1, shot_count + 1)
    ]


def make_bundle(shot_count: int = 8) -> ScriptBundle:
    script = make_script(shot_count)
    return ScriptBundle(
        script=script,
        groups=build_groups(script, [f"Beat {i}" for i in range(1, shot_count // 4 + 1)]),
        settings=Settings(
            overview="A rain-soaked city in 1947",
            style="Film noir",
            characters=[
                SettingItem(name="Detective", description="Tired man in a trench coat", prompt="noir detective sheet"),
            ],
            scenes=[
                SettingItem(name="Office", description="Smoky office with blinds", prompt="1940s office interior"),
                SettingItem(name="Alley", description="Wet alley under neon", prompt="rainy alley at night"),
            ],
        ),
    )


def make_image_prompts(tag: str = "") -> ImagePrompts:
    return ImagePrompts(
        shot="2x2 grid storyboard",
        subject=f"subject {tag}".strip(),
        environment="rainy street",
        lighting="hard key light",
        camera="35mm, low angle",
        colorGrade="high contrast monochrome",
        style="film noir",
        quality="8k, film grain",
    )


def make_prompt_result(group_id: int, tag: str = "") -> PromptResult:
    return PromptResult(
        groupId=group_id,
        imagePrompts=make_image_prompts(tag or f"group {group_id}"),
        cameraPrompts=f"Camera prompts for group {group_id}",
    )


class FakeProvider(BaseLLMProvider):
    """Provider returning queued responses; exceptions in the queue are raised."""

    name = "fake"

    def __init__(self, responses: Optional[List[Any]] = None):
        super().__init__(StoryframeConfig().llm)
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []

    async def generate(self, prompt, system_prompt="", temperature=None, max_tokens=None,
                       media=(), response_mime_type=None, model=None):
        self.calls.append({
            "prompt": prompt,
            "system_prompt": system_prompt,
            "media": list(media),
            "response_mime_type": response_mime_type,
            "model": model,
        })
        if not self.responses:
            raise AssertionError("FakeProvider ran out of responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeGenerator:
    """
    Stand-in for StoryboardGenerator used by session tests.

    ``prompt_failures`` maps group id -> exception raised for that group.
    """

    def __init__(self, bundle: Optional[ScriptBundle] = None):
        self.model = "gemini-3-flash-preview"
        self.bundle = bundle
        self.script_error: Optional[Exception] = None
        self.prompt_failures: Dict[int, Exception] = {}
        self.prompt_calls: List[int] = []
        self.refined_script: Optional[List[Shot]] = None
        self.refined_prompts: Optional[ImagePrompts] = None
        self.image_prompt = "generated from image"
        self.hooks: Dict[str, Any] = {}

    def set_model(self, model) -> None:
        self.model = ModelChoice(getattr(model, "value", model)).value

    async def generate_script(self, brief, shot_count):
        if "before_script" in self.hooks:
            await self.hooks["before_script"]()
        if self.script_error:
            raise self.script_error
        return self.bundle or make_bundle(shot_count)

    async def parse_document(self, data, mime_type, shot_count):
        return await self.generate_script("document", shot_count)

    async def generate_prompts(self, group, shots, settings, reference_image=None):
        self.prompt_calls.append(group.id)
        if "before_prompts" in self.hooks:
            await self.hooks["before_prompts"](group)
        if group.id in self.prompt_failures:
            raise self.prompt_failures[group.id]
        return make_prompt_result(group.id, tag=f"call {len(self.prompt_calls)}")

    async def refine_script(self, script, instruction, shot_id=None):
        return self.refined_script

    async def refine_prompt(self, image_prompts, instruction, target_field=None):
        return self.refined_prompts

    async def idea_from_media(self, media):
        return f"idea from {len(media)} item(s)"

    async def prompt_from_image(self, data, mime_type, kind):
        return self.image_prompt


async def instant_sleep(seconds: float) -> None:
    return None


class SleepRecorder:
    """Awaitable sleep that records requested delays instead of waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sample_config() -> Dict[str, Any]:
    """Sample configuration for testing."""
    return {
        "project_name": "Storyframe Test",
        "version": "1.0.0",
        "llm": {
            "provider": "google",
            "model": "gemini-3-pro-preview",
            "temperature": 0.5,
        },
        "pipeline": {
            "chunk_size": 4,
            "item_delay_seconds": 0,
            "retry": {"max_retries": 2, "base_delay": 1.0},
        },
    }


@pytest.fixture
def sample_bundle() -> ScriptBundle:
    """Eight-shot, two-group noir storyboard."""
    return make_bundle(8)


@pytest.fixture
def bundle_factory():
    return make_bundle


@pytest.fixture
def prompt_result_factory():
    return make_prompt_result


@pytest.fixture
def sample_prompt_result() -> PromptResult:
    return make_prompt_result(1)


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def fast_config() -> StoryframeConfig:
    """Default configuration with no pause between queue items."""
    config = StoryframeConfig()
    config.pipeline.item_delay_seconds = 0
    return config


@pytest.fixture
def fake_provider_factory():
    return FakeProvider


@pytest.fixture
def generator_factory(fast_config):
    """Build a real StoryboardGenerator over a FakeProvider with instant backoff."""
    def factory(responses):
        provider = FakeProvider(responses)
        generator = StoryboardGenerator(
            provider=provider,
            config=fast_config,
            retry_policy=RetryPolicy(sleep=instant_sleep),
        )
        return generator, provider
    return factory


@pytest.fixture
def fake_generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def fake_generator_factory():
    return FakeGenerator


@pytest.fixture
def no_sleep():
    return instant_sleep


@pytest.fixture
def bundle_json(sample_bundle) -> str:
    """Model-style JSON answer for the sample bundle."""
    return json.dumps(sample_bundle.to_wire())

