"""
Storyframe - Brief-to-Storyboard Generation Orchestrator

Turns a short creative brief into a shot-by-shot video script, then drives
per-group image and camera prompt generation against an AI text service,
with human and AI-assisted editing at both stages.

Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Storyframe Team"
__project__ = "Storyframe"

from pathlib import Path

# Load environment variables early - before any provider looks for API keys
from storyframe.core.env_loader import ensure_env_loaded
ensure_env_loaded()

# Package root directory
PACKAGE_ROOT = Path(__file__).parent
PROJECT_ROOT = PACKAGE_ROOT.parent

__all__ = [
    "__version__",
    "__author__",
    "__project__",
    "PACKAGE_ROOT",
    "PROJECT_ROOT",
]
