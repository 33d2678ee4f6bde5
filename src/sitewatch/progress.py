"""Project and portfolio progress figures for the dashboard."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

from sitewatch.models import EffectiveStatus, Project, Task, TaskStatus, User, UserRole
from sitewatch.status import resolve_each


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def project_progress(project: Project) -> int:
    """The stored progress percentage. Authoritative over anything derived."""
    return project.progress


def portfolio_average(projects: Sequence[Project]) -> int:
    """Mean progress across projects, rounded to the nearest integer. 0 when empty."""
    if not projects:
        return 0
    return _round_half_up(sum(p.progress for p in projects) / len(projects))


def delayed_task_count(tasks: Sequence[Task], current_date: date) -> int:
    return sum(1 for _, s in resolve_each(tasks, current_date) if s == EffectiveStatus.DELAYED)


def task_completion(tasks: Sequence[Task]) -> int:
    """Share of tasks declared COMPLETED, as a percentage.

    Used when recomputing a project's stored progress from its tasks.
    """
    if not tasks:
        return 0
    done = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
    return _round_half_up(done / len(tasks) * 100)


@dataclass(frozen=True)
class DashboardSummary:
    total_projects: int
    site_engineers: int
    delayed_tasks: int
    average_progress: int


def dashboard_summary(
    projects: Sequence[Project],
    tasks: Sequence[Task],
    users: Sequence[User],
    current_date: date,
) -> DashboardSummary:
    return DashboardSummary(
        total_projects=len(projects),
        site_engineers=sum(1 for u in users if u.role == UserRole.ENGINEER),
        delayed_tasks=delayed_task_count(tasks, current_date),
        average_progress=portfolio_average(projects),
    )
