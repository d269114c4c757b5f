"""
Storyframe LLM Providers

Text/multimodal generation backends. Providers only move bytes and text:
retry and response validation are layered on top by the generator.
"""

import asyncio
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

from storyframe.core.config import LLMConfig
from storyframe.core.constants import LLMProvider
from storyframe.core.env_loader import ensure_env_loaded, get_google_api_key
from storyframe.core.exceptions import (
    ContentBlockedError,
    LLMProviderError,
    MissingConfigError,
    RateLimitError,
)
from storyframe.core.logging_config import get_logger
from storyframe.core.retry import is_transient_capacity_error

logger = get_logger("llm.providers")

JSON_MIME_TYPE = "application/json"


@dataclass
class MediaItem:
    """Inline binary content (image, video, document) sent alongside a prompt."""
    data: bytes
    mime_type: str

    @property
    def is_video(self) -> bool:
        return self.mime_type.startswith("video/")


class BaseLLMProvider(ABC):
    """Abstract base class for LLM providers."""

    name = "base"

    def __init__(self, config: LLMConfig):
        self.config = config
        ensure_env_loaded()
        self._api_key = os.environ.get(config.api_key_env)
        if not self._api_key:
            logger.warning(f"API key not found: {config.api_key_env}")

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: str = "",
        temperature: float = None,
        max_tokens: int = None,
        media: Sequence[MediaItem] = (),
        response_mime_type: Optional[str] = None,
        model: Optional[str] = None
    ) -> str:
        """Generate a response from the LLM."""
        pass

    @property
    def is_available(self) -> bool:
        """Check if the provider is available."""
        return self._api_key is not None


class GoogleProvider(BaseLLMProvider):
    """Google Gemini provider."""

    name = LLMProvider.GOOGLE.value

    def __init__(self, config: LLMConfig):
        super().__init__(config)
        if not self._api_key:
            self._api_key = get_google_api_key()

    def _build_contents(self, prompt: str, media: Sequence[MediaItem]) -> List:
        parts = [{"mime_type": item.mime_type, "data": item.data} for item in media]
        parts.append(prompt)
        return parts

    async def generate(
        self,
        prompt: str,
        system_prompt: str = "",
        temperature: float = None,
        max_tokens: int = None,
        media: Sequence[MediaItem] = (),
        response_mime_type: Optional[str] = None,
        model: Optional[str] = None
    ) -> str:
        if not self.is_available:
            raise MissingConfigError(f"API key not set: {self.config.api_key_env}")

        try:
            import google.generativeai as genai

            genai.configure(api_key=self._api_key)
            generative_model = genai.GenerativeModel(
                model or self.config.model,
                system_instruction=system_prompt or None
            )

            generation_config = {
                "temperature": temperature if temperature is not None else self.config.temperature,
                "max_output_tokens": max_tokens or self.config.max_tokens
            }
            if response_mime_type:
                generation_config["response_mime_type"] = response_mime_type

            response = await asyncio.to_thread(
                generative_model.generate_content,
                self._build_contents(prompt, media),
                generation_config=generation_config,
                request_options={"timeout": self.config.timeout}
            )

            # finish_reason: 3=SAFETY, 4=RECITATION
            if not response.candidates:
                block_reason = "UNKNOWN"
                feedback = getattr(response, "prompt_feedback", None)
                if feedback is not None and hasattr(feedback, "block_reason"):
                    block_reason = str(feedback.block_reason)
                logger.warning(f"Google Gemini blocked content: {block_reason}")
                raise ContentBlockedError(self.name, f"block_reason: {block_reason}")

            candidate = response.candidates[0]
            if getattr(candidate, "finish_reason", None) in (3, 4):
                reason = {3: "SAFETY", 4: "RECITATION"}[candidate.finish_reason]
                logger.warning(f"Google Gemini blocked content: finish_reason={reason}")
                raise ContentBlockedError(self.name, f"finish_reason: {reason}")

            if not candidate.content or not candidate.content.parts:
                raise ContentBlockedError(
                    self.name, f"Empty content with finish_reason={candidate.finish_reason}"
                )

            return response.text

        except (ContentBlockedError, MissingConfigError):
            raise
        except Exception as e:
            error_msg = str(e)
            if is_transient_capacity_error(e):
                raise RateLimitError(self.name, error_msg)
            if "PROHIBITED_CONTENT" in error_msg or "block_reason" in error_msg:
                logger.warning(f"Google Gemini blocked content (from exception): {error_msg}")
                raise ContentBlockedError(self.name, error_msg)
            raise LLMProviderError(self.name, error_msg)


PROVIDERS = {
    LLMProvider.GOOGLE: GoogleProvider,
}


def create_provider(config: LLMConfig) -> BaseLLMProvider:
    """Instantiate the provider named by ``config.provider``."""
    provider_class = PROVIDERS.get(config.provider)
    if provider_class is None:
        raise LLMProviderError(str(config.provider), "provider not supported")
    return provider_class(config)
