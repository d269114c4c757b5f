"""
Storyframe Configuration Management

Centralized configuration system with JSON loading and validation.
"""

import json
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from .constants import (
    DEFAULT_MODEL,
    GROUP_CHUNK_SIZE,
    LLMProvider,
    QUEUE_ITEM_DELAY_SECONDS,
    SHOT_COUNT_OPTIONS,
)
from .exceptions import ConfigurationError, InvalidConfigError

DEFAULT_CONFIG_PATH = Path("config/storyframe_config.json")


@dataclass
class LLMConfig:
    """Configuration for the generation service."""
    provider: LLMProvider = LLMProvider.GOOGLE
    model: str = DEFAULT_MODEL
    api_key_env: str = "GEMINI_API_KEY"
    temperature: float = 0.7
    max_tokens: int = 8192
    timeout: int = 120

    @classmethod
    def from_dict(cls, data: dict) -> 'LLMConfig':
        """Create LLMConfig from dictionary."""
        try:
            provider = LLMProvider(data.get('provider', LLMProvider.GOOGLE.value))
        except ValueError:
            raise InvalidConfigError(f"Unknown LLM provider: {data.get('provider')}")
        return cls(
            provider=provider,
            model=data.get('model', DEFAULT_MODEL),
            api_key_env=data.get('api_key_env', 'GEMINI_API_KEY'),
            temperature=data.get('temperature', 0.7),
            max_tokens=data.get('max_tokens', 8192),
            timeout=data.get('timeout', 120)
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['provider'] = self.provider.value
        return data


@dataclass
class RetrySettings:
    """Backoff settings for transient upstream failures."""
    max_retries: int = 3
    base_delay: float = 2.0
    exponential_base: float = 2.0


@dataclass
class PipelineConfig:
    """Pipeline configuration settings."""
    chunk_size: int = GROUP_CHUNK_SIZE
    item_delay_seconds: float = QUEUE_ITEM_DELAY_SECONDS
    shot_count_options: List[int] = field(default_factory=lambda: list(SHOT_COUNT_OPTIONS))
    retry: RetrySettings = field(default_factory=RetrySettings)


@dataclass
class StoryframeConfig:
    """Main configuration class for Storyframe."""

    project_name: str = "Storyframe"
    version: str = "1.0.0"

    logs_dir: Path = field(default_factory=lambda: Path("logs"))

    llm: LLMConfig = field(default_factory=LLMConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)

    verbose_logging: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> 'StoryframeConfig':
        """Create StoryframeConfig from dictionary."""
        config = cls()

        config.project_name = data.get('project_name', config.project_name)
        config.version = data.get('version', config.version)
        config.verbose_logging = data.get('verbose_logging', config.verbose_logging)

        if 'paths' in data:
            paths = data['paths']
            config.logs_dir = Path(paths.get('logs_dir', 'logs'))

        if 'llm' in data:
            config.llm = LLMConfig.from_dict(data['llm'])

        if 'pipeline' in data:
            pipe_data = data['pipeline']
            retry_data = pipe_data.get('retry', {})
            config.pipeline = PipelineConfig(
                chunk_size=pipe_data.get('chunk_size', GROUP_CHUNK_SIZE),
                item_delay_seconds=pipe_data.get('item_delay_seconds', QUEUE_ITEM_DELAY_SECONDS),
                shot_count_options=pipe_data.get('shot_count_options', list(SHOT_COUNT_OPTIONS)),
                retry=RetrySettings(
                    max_retries=retry_data.get('max_retries', 3),
                    base_delay=retry_data.get('base_delay', 2.0),
                    exponential_base=retry_data.get('exponential_base', 2.0)
                )
            )

        config.validate()
        return config

    def validate(self) -> None:
        """Reject values the pipeline can't run with."""
        if self.pipeline.chunk_size < 1:
            raise InvalidConfigError("pipeline.chunk_size must be positive")
        if self.pipeline.item_delay_seconds < 0:
            raise InvalidConfigError("pipeline.item_delay_seconds must not be negative")
        if self.pipeline.retry.max_retries < 0:
            raise InvalidConfigError("pipeline.retry.max_retries must not be negative")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a JSON-serializable dictionary."""
        return {
            'project_name': self.project_name,
            'version': self.version,
            'verbose_logging': self.verbose_logging,
            'paths': {
                'logs_dir': str(self.logs_dir),
            },
            'llm': self.llm.to_dict(),
            'pipeline': asdict(self.pipeline),
        }


def get_default_config() -> StoryframeConfig:
    """Return a configuration with every default applied."""
    return StoryframeConfig()


def load_config(config_path: Optional[Path] = None) -> StoryframeConfig:
    """
    Load configuration from JSON file.

    Args:
        config_path: Path to configuration file. If None, uses default.

    Returns:
        Loaded StoryframeConfig instance
    """
    config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return get_default_config()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidConfigError(f"Invalid JSON in config file: {e}")
    except OSError as e:
        raise ConfigurationError(f"Failed to load config: {e}")

    return StoryframeConfig.from_dict(data)


def save_config(config: StoryframeConfig, config_path: Optional[Path] = None) -> Path:
    """Write configuration to a JSON file."""
    config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config.to_dict(), f, indent=2)
    return config_path


# Global config instance
_config: Optional[StoryframeConfig] = None


def get_config() -> StoryframeConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: StoryframeConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
