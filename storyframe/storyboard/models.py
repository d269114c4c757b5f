"""
Storyboard Data Models

Shots, groups, settings, script bundles and per-group prompt results.
Wire names (as produced by the generation service and written to export
snapshots) are camelCase; attributes are snake_case.
"""

from dataclasses import dataclass
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field


class StoryboardModel(BaseModel):
    """Base for storyboard structures: accepts wire or attribute names."""
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        """Serialize using wire (camelCase) names."""
        return self.model_dump(by_alias=True)


class Shot(StoryboardModel):
    """One indivisible unit of visual script content."""
    id: int
    description: str
    voiceover: str
    movement: str


class Group(StoryboardModel):
    """A fixed-size contiguous chunk of shots, generated as one unit."""
    id: int
    range: str
    narrative: str


class SettingItem(StoryboardModel):
    """A character or scene reference entry."""
    name: str
    description: str
    prompt: str


class Settings(StoryboardModel):
    """World, style, character and scene reference shared by every group."""
    overview: str
    style: str
    characters: List[SettingItem]
    scenes: List[SettingItem]


class ScriptBundle(StoryboardModel):
    """The complete reviewable unit before prompt generation."""
    script: List[Shot]
    groups: List[Group]
    settings: Settings


class ImagePrompts(StoryboardModel):
    """Image-generation fields for one group, in their fixed order."""
    shot: str
    subject: str
    environment: str
    lighting: str
    camera: str
    color_grade: str = Field(alias="colorGrade")
    style: str
    quality: str

    def ordered_items(self) -> List[tuple]:
        """(wire name, value) pairs in display order."""
        return list(self.to_wire().items())


class PromptResult(StoryboardModel):
    """Generated output for one group."""
    group_id: int = Field(alias="groupId")
    image_prompts: ImagePrompts = Field(alias="imagePrompts")
    camera_prompts: str = Field(alias="cameraPrompts")


PromptMap = Dict[int, PromptResult]


@dataclass
class BatchProgress:
    """Progress of the active generation run."""
    current: int
    total: int

    @property
    def percent(self) -> float:
        if not self.total:
            return 100.0
        return self.current / self.total * 100

    def to_dict(self) -> dict:
        return {"current": self.current, "total": self.total, "percent": self.percent}
