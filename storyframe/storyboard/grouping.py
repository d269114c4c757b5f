"""
Shot grouping.

Groups partition a script into fixed-size contiguous chunks. A group's id
alone decides which shots it owns: zero-based indexes
[(id - 1) * chunk_size, (id - 1) * chunk_size + chunk_size).
"""

from typing import Iterable, List

from storyframe.core.constants import GROUP_CHUNK_SIZE
from storyframe.core.exceptions import BriefValidationError, BundleValidationError
from .models import Group, PromptMap, ScriptBundle, Shot


def group_offset(group_id: int, chunk_size: int = GROUP_CHUNK_SIZE) -> int:
    """Zero-based index of the first shot owned by ``group_id``."""
    return (group_id - 1) * chunk_size


def shots_for_group(
    script: List[Shot],
    group_id: int,
    chunk_size: int = GROUP_CHUNK_SIZE
) -> List[Shot]:
    """Return the shots a group owns."""
    start = group_offset(group_id, chunk_size)
    return script[start:start + chunk_size]


def range_label(group_id: int, chunk_size: int = GROUP_CHUNK_SIZE) -> str:
    """Human-readable 1-based shot span, e.g. "5-8" for group 2."""
    start = group_offset(group_id, chunk_size) + 1
    return f"{start}-{start + chunk_size - 1}"


def expected_group_count(shot_count: int, chunk_size: int = GROUP_CHUNK_SIZE) -> int:
    return shot_count // chunk_size


def validate_shot_count(shot_count: int, chunk_size: int = GROUP_CHUNK_SIZE) -> None:
    """Shot counts must be positive multiples of the chunk size."""
    if isinstance(shot_count, bool) or not isinstance(shot_count, int):
        raise BriefValidationError("shot count must be an integer", shot_count)
    if shot_count <= 0:
        raise BriefValidationError("shot count must be positive", shot_count)
    if shot_count % chunk_size:
        raise BriefValidationError(
            f"shot count must be a multiple of {chunk_size}", shot_count
        )


def build_groups(
    script: List[Shot],
    narratives: Iterable[str] = (),
    chunk_size: int = GROUP_CHUNK_SIZE
) -> List[Group]:
    """Build the groups partitioning ``script``, one per full chunk."""
    narratives = list(narratives)
    groups = []
    for index in range(len(script) // chunk_size):
        group_id = index + 1
        groups.append(Group(
            id=group_id,
            range=range_label(group_id, chunk_size),
            narrative=narratives[index] if index < len(narratives) else "",
        ))
    return groups


def validate_partition(bundle: ScriptBundle, chunk_size: int = GROUP_CHUNK_SIZE) -> None:
    """
    Check that the groups contiguously partition the script.

    Raises:
        BundleValidationError: On non-contiguous shot or group ids, or when
            the group count doesn't match the script length.
    """
    shot_ids = [shot.id for shot in bundle.script]
    if shot_ids != list(range(1, len(shot_ids) + 1)):
        raise BundleValidationError("shot ids must run 1..N without gaps", shot_ids=shot_ids)

    if len(bundle.script) % chunk_size:
        raise BundleValidationError(
            f"script length {len(bundle.script)} is not a multiple of {chunk_size}",
            shot_count=len(bundle.script)
        )

    group_ids = [group.id for group in bundle.groups]
    expected = expected_group_count(len(bundle.script), chunk_size)
    if group_ids != list(range(1, expected + 1)):
        raise BundleValidationError(
            f"expected groups 1..{expected} for {len(bundle.script)} shots",
            group_ids=group_ids
        )


def missing_groups(groups: List[Group], prompts: PromptMap) -> List[Group]:
    """Groups, in order, that have no prompt result yet."""
    return [group for group in groups if group.id not in prompts]
