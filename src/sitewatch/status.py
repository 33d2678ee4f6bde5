"""Effective status resolution.

The declared status on a task is what users set. The effective status is
what the timeline and the dashboard show: it accounts for lapsed end dates
and unfinished dependencies. It is recomputed on every pass and never
written back to the task.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date

from sitewatch.models import EffectiveStatus, Task, TaskStatus


def _is_done(task: Task) -> bool:
    # Only a declared COMPLETED resolves to an effective COMPLETED.
    return task.status == TaskStatus.COMPLETED


def effective_status(
    task: Task,
    current_date: date,
    dependency_tasks: Iterable[Task] = (),
) -> EffectiveStatus:
    """Resolve the status to display for *task* on *current_date*.

    Precedence: completed, then overdue, then blocked by an unfinished
    dependency, then the declared status.
    """
    if task.status == TaskStatus.COMPLETED:
        return EffectiveStatus.COMPLETED
    if task.end_date < current_date:
        return EffectiveStatus.DELAYED
    if any(not _is_done(dep) for dep in dependency_tasks):
        return EffectiveStatus.BLOCKED
    return EffectiveStatus.from_declared(task.status)


def dependency_tasks(task: Task, tasks_by_id: dict[str, Task]) -> list[Task]:
    """The tasks *task* depends on within its own project.

    Unknown ids, ids from other projects and self references are skipped;
    the graph validator reports those.
    """
    deps = []
    for dep in task.depends_on:
        other = tasks_by_id.get(dep)
        if other is not None and other.id != task.id and other.project_id == task.project_id:
            deps.append(other)
    return deps


def resolve_each(
    tasks: Sequence[Task],
    current_date: date,
) -> list[tuple[Task, EffectiveStatus]]:
    """Pair every task with its effective status, in input order.

    Task ids are only unique within a project, so dependencies are looked
    up per project.
    """
    by_project: dict[str, dict[str, Task]] = {}
    for t in tasks:
        by_project.setdefault(t.project_id, {})[t.id] = t
    return [
        (t, effective_status(t, current_date, dependency_tasks(t, by_project[t.project_id])))
        for t in tasks
    ]


def resolve_statuses(
    tasks: Sequence[Task],
    current_date: date,
) -> dict[str, EffectiveStatus]:
    """Effective status for one project's tasks, keyed by task id."""
    return {t.id: status for t, status in resolve_each(tasks, current_date)}
