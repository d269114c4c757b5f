"""
Pipeline Phase Machine

Idle -> GeneratingScript -> ReviewingScript -> GeneratingPrompts ->
ReviewingPrompts, plus import, failure, regeneration and reset edges.
"""

from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from storyframe.core.exceptions import IllegalTransitionError
from storyframe.core.logging_config import get_logger

logger = get_logger("pipelines.phase")


class Phase(Enum):
    """Pipeline phases."""
    IDLE = "idle"
    GENERATING_SCRIPT = "generating_script"
    REVIEWING_SCRIPT = "reviewing_script"
    GENERATING_PROMPTS = "generating_prompts"
    REVIEWING_PROMPTS = "reviewing_prompts"

    @property
    def is_busy(self) -> bool:
        return self in (Phase.GENERATING_SCRIPT, Phase.GENERATING_PROMPTS)


TRANSITIONS: Dict[Phase, FrozenSet[Phase]] = {
    # Brief or document submitted; bundle or snapshot imported
    Phase.IDLE: frozenset({Phase.GENERATING_SCRIPT, Phase.REVIEWING_SCRIPT}),
    Phase.GENERATING_SCRIPT: frozenset({Phase.REVIEWING_SCRIPT, Phase.IDLE}),
    Phase.REVIEWING_SCRIPT: frozenset({
        Phase.GENERATING_PROMPTS, Phase.REVIEWING_PROMPTS, Phase.IDLE
    }),
    Phase.GENERATING_PROMPTS: frozenset({Phase.REVIEWING_PROMPTS, Phase.IDLE}),
    Phase.REVIEWING_PROMPTS: frozenset({Phase.GENERATING_PROMPTS, Phase.IDLE}),
}

PhaseListener = Callable[[Phase, Phase], None]


class PipelinePhaseMachine:
    """
    Guards phase changes.

    Listeners are called with (previous, current) after every change.
    """

    def __init__(self, initial: Phase = Phase.IDLE):
        self._phase = initial
        self._listeners: List[PhaseListener] = []
        self.history: List[Tuple[Phase, Phase]] = []

    @property
    def phase(self) -> Phase:
        return self._phase

    def add_listener(self, listener: PhaseListener) -> None:
        self._listeners.append(listener)

    def can_transition(self, target: Phase) -> bool:
        return target in TRANSITIONS[self._phase]

    def transition(self, target: Phase, reason: str = "") -> None:
        """
        Move to ``target``.

        Raises:
            IllegalTransitionError: If the edge isn't in the transition table.
        """
        if not self.can_transition(target):
            raise IllegalTransitionError(self._phase.value, target.value)

        previous = self._phase
        self._phase = target
        self.history.append((previous, target))
        logger.info(
            f"Phase {previous.value} -> {target.value}" + (f" ({reason})" if reason else "")
        )
        for listener in list(self._listeners):
            listener(previous, target)

    def reset(self) -> Optional[Phase]:
        """Return to IDLE from any phase; returns the phase left, or None if already idle."""
        if self._phase == Phase.IDLE:
            return None
        previous = self._phase
        self.transition(Phase.IDLE, reason="reset")
        return previous
