"""Milestone grouping and status filtering for the project timeline."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final

from sitewatch.models import MILESTONE_ORDER, Milestone, Task, TaskStatus

ALL: Final = "ALL"

StatusFilter = TaskStatus | str


def parse_status_filter(value: str | None) -> StatusFilter:
    """Turn user input into ALL or a TaskStatus. Raises ValueError if unknown."""
    if value is None or value.upper() == ALL:
        return ALL
    return TaskStatus(value.upper())


def filter_by_status(tasks: Sequence[Task], status: StatusFilter = ALL) -> list[Task]:
    """Tasks whose declared status matches, in their original order."""
    if status == ALL:
        return list(tasks)
    return [t for t in tasks if t.status == status]


def group_by_milestone(
    tasks: Sequence[Task],
    status: StatusFilter = ALL,
) -> list[tuple[Milestone, list[Task]]]:
    """Group tasks in fixed milestone order, dropping milestones left empty."""
    matching = filter_by_status(tasks, status)
    groups = []
    for milestone in MILESTONE_ORDER:
        milestone_tasks = [t for t in matching if t.milestone == milestone]
        if milestone_tasks:
            groups.append((milestone, milestone_tasks))
    return groups


def is_milestone_complete(milestone_tasks: Sequence[Task]) -> bool:
    # Declared status on purpose: a task finished late still counts as done.
    return all(t.status == TaskStatus.COMPLETED for t in milestone_tasks)


@dataclass(frozen=True)
class MilestoneGroup:
    milestone: Milestone
    tasks: list[Task]
    complete: bool


def timeline(tasks: Sequence[Task], status: StatusFilter = ALL) -> list[MilestoneGroup]:
    """Timeline sections for a project's tasks.

    Only matching tasks are listed, but completion is judged on every task
    in the milestone so that filtering never marks a milestone done.
    """
    return [
        MilestoneGroup(
            milestone=milestone,
            tasks=shown,
            complete=is_milestone_complete([t for t in tasks if t.milestone == milestone]),
        )
        for milestone, shown in group_by_milestone(tasks, status)
    ]
