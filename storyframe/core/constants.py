"""
Storyframe Constants

Global constants used throughout the Storyframe system.
"""

from enum import Enum

# =============================================================================
# VERSION INFO
# =============================================================================
VERSION = "1.0.0"
PROJECT_NAME = "Storyframe"
EXPORT_PROJECT_LABEL = "AI Video Director Project"
EXPORT_FORMAT_VERSION = "1.0"

# =============================================================================
# STORYBOARD STRUCTURE
# =============================================================================

# Shots per group; a group is one unit of prompt generation
GROUP_CHUNK_SIZE = 4

# Shot counts offered when submitting a brief
SHOT_COUNT_OPTIONS = [4, 8, 12, 16, 20, 24, 28, 32, 36, 40, 44, 48]
DEFAULT_SHOT_COUNT = 12

# Ordered image prompt fields (wire names)
IMAGE_PROMPT_FIELDS = [
    "shot",
    "subject",
    "environment",
    "lighting",
    "camera",
    "colorGrade",
    "style",
    "quality",
]


class SettingKind(Enum):
    """Kinds of reference material held in Settings."""
    CHARACTER = "character"
    SCENE = "scene"


SETTING_PLACEHOLDERS = {
    SettingKind.CHARACTER: {
        "name": "New character",
        "description": "Enter a detailed visual description...",
        "prompt": "AI prompt pending...",
    },
    SettingKind.SCENE: {
        "name": "New scene",
        "description": "Enter a detailed visual description...",
        "prompt": "AI prompt pending...",
    },
}

GLOBAL_SETTING_FIELDS = ("overview", "style")

STYLE_PRESETS = [
    "Cyberpunk",
    "Ghibli hand-drawn",
    "Hollywood cinematic",
    "80s retro",
    "Film noir",
    "Pixar 3D",
    "Unreal Engine 5",
    "Chinese ink wash",
    "Japanese anime",
    "Minimalist",
]

# =============================================================================
# GENERATION SERVICE
# =============================================================================

class LLMProvider(Enum):
    """Supported LLM providers."""
    GOOGLE = "google"


class ModelChoice(Enum):
    """Model tiers offered per session."""
    FLASH = "gemini-3-flash-preview"
    PRO = "gemini-3-pro-preview"


DEFAULT_MODEL = ModelChoice.FLASH.value

# Model used for media analysis regardless of the session's choice
MEDIA_ANALYSIS_MODEL = ModelChoice.FLASH.value

# Substrings that mark an upstream error as transient capacity exhaustion
TRANSIENT_ERROR_MARKERS = ("429", "quota", "RESOURCE_EXHAUSTED")

# Fixed pause after each queue item, in seconds
QUEUE_ITEM_DELAY_SECONDS = 0.5
