"""
Generation Queue

Drives one generation call per group, strictly one after another, with a
user-visible progress counter. A failing item is logged and skipped; it
never shortens the run.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from storyframe.core.constants import QUEUE_ITEM_DELAY_SECONDS
from storyframe.core.exceptions import QueueBusyError
from storyframe.core.logging_config import get_logger
from storyframe.storyboard.models import BatchProgress, Group, PromptResult

logger = get_logger("pipelines.queue")

ItemOperation = Callable[[Group], Awaitable[PromptResult]]


class QueueStatus(Enum):
    """Status of a queue."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass
class QueueItemFailure:
    """A group whose generation raised."""
    group_id: int
    error: Exception

    def to_dict(self) -> Dict[str, Any]:
        return {"group_id": self.group_id, "error": str(self.error)}


@dataclass
class QueueRunResult:
    """Outcome of one queue run."""
    results: Dict[int, PromptResult] = field(default_factory=dict)
    failures: List[QueueItemFailure] = field(default_factory=list)
    attempted: int = 0

    @property
    def succeeded(self) -> int:
        return len(self.results)

    @property
    def failed_group_ids(self) -> List[int]:
        return [failure.group_id for failure in self.failures]


class GenerationQueue:
    """
    Sequential batch runner for per-group generation.

    Per item: mark active, run the operation, store the result keyed by
    group id (overwriting), advance progress, then pause for
    ``item_delay`` seconds. After the last item progress is cleared
    (published as None) and ``on_complete`` fires.

    Args:
        operation: Async call producing a PromptResult for one group.
        item_delay: Fixed pause after every item, success or failure.
        sleep: Awaitable sleep, injectable for tests.
        on_active: Called with the group id about to be generated.
        on_progress: Called with a BatchProgress, or None once cleared.
        on_result: Called with (group_id, result) as soon as an item succeeds.
        on_complete: Called with the QueueRunResult at the end of a run.
    """

    def __init__(
        self,
        operation: ItemOperation,
        item_delay: float = QUEUE_ITEM_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        on_active: Optional[Callable[[int], None]] = None,
        on_progress: Optional[Callable[[Optional[BatchProgress]], None]] = None,
        on_result: Optional[Callable[[int, PromptResult], None]] = None,
        on_complete: Optional[Callable[[QueueRunResult], None]] = None
    ):
        self.operation = operation
        self.item_delay = item_delay
        self._sleep = sleep
        self._on_active = on_active
        self._on_progress = on_progress
        self._on_result = on_result
        self._on_complete = on_complete

        self._status = QueueStatus.IDLE
        self._progress: Optional[BatchProgress] = None

    @property
    def status(self) -> QueueStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status == QueueStatus.RUNNING

    @property
    def progress(self) -> Optional[BatchProgress]:
        """Progress of the active run; None between runs."""
        return self._progress

    def _notify(self, callback: Optional[Callable], *args) -> None:
        # Observers never abort the run
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.warning(f"Queue callback error: {e}")

    def _publish_progress(self, progress: Optional[BatchProgress]) -> None:
        self._progress = progress
        self._notify(self._on_progress, progress)

    async def run(self, groups: List[Group]) -> QueueRunResult:
        """
        Generate every group in order.

        Raises:
            QueueBusyError: If a run is already active on this queue.
        """
        if self.is_running:
            raise QueueBusyError(self._progress.total if self._progress else 0)

        groups = list(groups)
        outcome = QueueRunResult()
        self._status = QueueStatus.RUNNING
        logger.info(f"Starting generation queue: {len(groups)} group(s)")

        try:
            if groups:
                self._publish_progress(BatchProgress(current=0, total=len(groups)))

            for index, group in enumerate(groups):
                self._notify(self._on_active, group.id)

                outcome.attempted += 1
                try:
                    result = await self.operation(group)
                except Exception as e:
                    logger.error(f"Group {group.id} generation failed: {e}")
                    outcome.failures.append(QueueItemFailure(group_id=group.id, error=e))
                else:
                    outcome.results[group.id] = result
                    self._notify(self._on_result, group.id, result)

                self._publish_progress(BatchProgress(current=index + 1, total=len(groups)))
                await self._sleep(self.item_delay)
        finally:
            self._publish_progress(None)
            self._status = QueueStatus.COMPLETED

        logger.info(
            f"Generation queue finished: {outcome.succeeded} succeeded, "
            f"{len(outcome.failures)} failed"
        )
        self._notify(self._on_complete, outcome)
        return outcome
