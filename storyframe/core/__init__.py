"""
Storyframe Core Module

Contains core systems including configuration, constants, exceptions, logging
and the retry policy.
"""

from .config import StoryframeConfig, load_config, get_config, set_config
from .constants import *
from .exceptions import *
from .logging_config import setup_logging, setup_server_logging, get_logger
from .retry import RetryConfig, RetryPolicy, LLM_RETRY_CONFIG, is_transient_capacity_error

__all__ = [
    'StoryframeConfig',
    'load_config',
    'get_config',
    'set_config',
    'setup_logging',
    'setup_server_logging',
    'get_logger',
    'RetryConfig',
    'RetryPolicy',
    'LLM_RETRY_CONFIG',
    'is_transient_capacity_error',
]
