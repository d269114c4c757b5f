"""
Tests for Generation Queue

Tests for storyframe/pipelines/generation_queue.py
"""

import asyncio

import pytest

from storyframe.core.exceptions import QueueBusyError, SanitizationError
from storyframe.pipelines.generation_queue import GenerationQueue, QueueStatus


class Recorder:
    """Collects queue callbacks in call order."""

    def __init__(self):
        self.events = []

    def active(self, group_id):
        self.events.append(("active", group_id))

    def progress(self, progress):
        self.events.append(("progress", None if progress is None else (progress.current, progress.total)))

    def result(self, group_id, result):
        self.events.append(("result", group_id))

    def complete(self, outcome):
        self.events.append(("complete", outcome.attempted))

    def of(self, kind):
        return [value for name, value in self.events if name == kind]


def make_queue(operation, recorder, sleep):
    return GenerationQueue(
        operation,
        item_delay=0.5,
        sleep=sleep,
        on_active=recorder.active,
        on_progress=recorder.progress,
        on_result=recorder.result,
        on_complete=recorder.complete,
    )


class TestGenerationQueue:
    """Tests for GenerationQueue.run."""

    @pytest.mark.asyncio
    async def test_sequential_run(self, bundle_factory, prompt_result_factory, sleep_recorder):
        """Test every group is generated in order with monotonic progress."""
        groups = bundle_factory(16).groups
        recorder = Recorder()

        async def operation(group):
            return prompt_result_factory(group.id)

        queue = make_queue(operation, recorder, sleep_recorder)
        outcome = await queue.run(groups)

        assert sorted(outcome.results) == [1, 2, 3, 4]
        assert recorder.of("active") == [1, 2, 3, 4]
        assert recorder.of("progress") == [(0, 4), (1, 4), (2, 4), (3, 4), (4, 4), None]
        assert recorder.events[-1] == ("complete", 4)
        assert sleep_recorder.delays == [0.5] * 4
        assert queue.progress is None
        assert queue.status == QueueStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_failures_isolated(self, bundle_factory, prompt_result_factory, sleep_recorder):
        """Test a failing item is skipped without shortening the run."""
        groups = bundle_factory(12).groups
        recorder = Recorder()

        async def operation(group):
            if group.id == 2:
                raise SanitizationError("missing field")
            return prompt_result_factory(group.id)

        outcome = await make_queue(operation, recorder, sleep_recorder).run(groups)

        assert sorted(outcome.results) == [1, 3]
        assert outcome.failed_group_ids == [2]
        assert outcome.attempted == 3
        assert recorder.of("result") == [1, 3]
        assert recorder.of("progress")[-2:] == [(3, 3), None]
        assert len(sleep_recorder.delays) == 3

    @pytest.mark.asyncio
    async def test_all_fail_still_completes(self, bundle_factory, sleep_recorder):
        recorder = Recorder()

        async def operation(group):
            raise RuntimeError("boom")

        outcome = await make_queue(operation, recorder, sleep_recorder).run(bundle_factory(8).groups)

        assert outcome.results == {}
        assert outcome.attempted == 2
        assert recorder.of("complete") == [2]

    @pytest.mark.asyncio
    async def test_empty_run(self, sleep_recorder):
        """Test an empty list creates no progress and still completes."""
        recorder = Recorder()

        async def operation(group):
            raise AssertionError("not called")

        outcome = await make_queue(operation, recorder, sleep_recorder).run([])

        assert outcome.attempted == 0
        assert recorder.of("progress") == [None]

    @pytest.mark.asyncio
    async def test_busy(self, bundle_factory, prompt_result_factory):
        """Test a second run while one is active raises QueueBusyError."""
        release = asyncio.Event()

        async def operation(group):
            await release.wait()
            return prompt_result_factory(group.id)

        async def no_sleep(seconds):
            return None

        queue = GenerationQueue(operation, sleep=no_sleep)
        groups = bundle_factory(8).groups
        first = asyncio.ensure_future(queue.run(groups))
        await asyncio.sleep(0)

        assert queue.is_running
        with pytest.raises(QueueBusyError):
            await queue.run(groups)

        release.set()
        outcome = await first
        assert sorted(outcome.results) == [1, 2]

    @pytest.mark.asyncio
    async def test_results_overwrite(self, bundle_factory, prompt_result_factory, sleep_recorder):
        """Test a repeated group overwrites its earlier result."""
        group = bundle_factory(4).groups[0]
        calls = []

        async def operation(g):
            calls.append(g.id)
            return prompt_result_factory(g.id, tag=f"attempt {len(calls)}")

        outcome = await GenerationQueue(operation, sleep=sleep_recorder).run([group, group])

        assert outcome.results[1].image_prompts.subject == "subject attempt 2"

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_abort_run(self, bundle_factory, prompt_result_factory, sleep_recorder):
        """Test a raising progress callback leaves the run to finish every group."""
        groups = bundle_factory(12).groups
        attempted = []

        async def operation(group):
            attempted.append(group.id)
            return prompt_result_factory(group.id)

        def progress(progress):
            if progress is not None and progress.current == 1:
                raise RuntimeError("observer failed")

        queue = GenerationQueue(operation, item_delay=0, sleep=sleep_recorder, on_progress=progress)
        outcome = await queue.run(groups)

        assert attempted == [1, 2, 3]
        assert sorted(outcome.results) == [1, 2, 3]
        assert queue.status == QueueStatus.COMPLETED
        assert queue.progress is None
