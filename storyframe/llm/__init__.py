"""
Storyframe LLM - generation service access, prompt templates and response
sanitizing.
"""

from .providers import BaseLLMProvider, GoogleProvider, MediaItem, create_provider
from .sanitizer import ResponseSanitizer, parse_json, sanitize, strip_fences
from .generation import StoryboardGenerator, retry_policy_from_config

__all__ = [
    "BaseLLMProvider",
    "GoogleProvider",
    "MediaItem",
    "create_provider",
    "ResponseSanitizer",
    "parse_json",
    "sanitize",
    "strip_fences",
    "StoryboardGenerator",
    "retry_policy_from_config",
]
