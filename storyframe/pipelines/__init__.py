"""
Storyframe Pipelines - phase machine, generation queue and the director
session that drives them.
"""

from .phase_machine import Phase, PipelinePhaseMachine, TRANSITIONS
from .generation_queue import (
    GenerationQueue,
    QueueItemFailure,
    QueueRunResult,
    QueueStatus,
)
from .orchestrator import DirectorSession, SessionEvent

__all__ = [
    "Phase",
    "PipelinePhaseMachine",
    "TRANSITIONS",
    "GenerationQueue",
    "QueueItemFailure",
    "QueueRunResult",
    "QueueStatus",
    "DirectorSession",
    "SessionEvent",
]
