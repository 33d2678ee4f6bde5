"""Validation and intake of new tasks and daily reports.

Nothing here mutates its inputs. Accepted records come back inside a new
tuple that the caller swaps in for the old collection.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date

from sitewatch.graph import validate_task
from sitewatch.models import DailyReport, Milestone, Task, TaskStatus, User

logger = logging.getLogger(__name__)

_TASK_ID = re.compile(r"^t(\d+)$")


class ValidationErrors(dict[str, str]):
    """Field name -> message for a rejected submission."""


class PermissionDeniedError(Exception):
    def __init__(self, user: User, action: str):
        self.user = user
        self.action = action
        super().__init__(f"{user.name} ({user.role.value}) may not {action}")


@dataclass
class TaskDraft:
    """Partially filled task form."""

    project_id: str
    name: str | None = None
    milestone: Milestone | None = None
    start_date: date | None = None
    end_date: date | None = None
    depends_on: list[str] = field(default_factory=list)
    status: TaskStatus | None = None  # ignored, new tasks always start NOT_STARTED


@dataclass(frozen=True)
class AddTaskCommand:
    draft: TaskDraft


@dataclass
class ReportDraft:
    project_id: str | None = None
    engineer_id: str | None = None
    date: date | None = None
    notes: str = ""
    present: bool = True
    photos: list[str] = field(default_factory=list)


def next_task_id(existing_tasks: Sequence[Task]) -> str:
    """Generate the next t<N> id, one past the highest in use."""
    numbers = []
    for t in existing_tasks:
        m = _TASK_ID.match(t.id)
        if m:
            numbers.append(int(m.group(1)))
    return f"t{max(numbers, default=0) + 1}"


def check_task_draft(draft: TaskDraft) -> ValidationErrors:
    errors = ValidationErrors()
    if not draft.name or not draft.name.strip():
        errors["name"] = "Task name is required."
    if draft.milestone is None:
        errors["milestone"] = "Milestone is required."
    if draft.start_date is None:
        errors["start_date"] = "Start date is required."
    if draft.end_date is None:
        errors["end_date"] = "End date is required."
    if draft.start_date and draft.end_date and draft.start_date > draft.end_date:
        errors["end_date"] = "end date cannot precede start date"
    return errors


def prepare_task(command: AddTaskCommand, existing_tasks: Sequence[Task]) -> Task | ValidationErrors:
    """Turn a submitted draft into a new task, or explain why it was rejected.

    The dependency graph is not checked here; see commit_task.
    """
    draft = command.draft
    errors = check_task_draft(draft)
    if errors:
        logger.debug("Rejected task draft: %s", dict(errors))
        return errors

    task_id = next_task_id(existing_tasks)
    depends_on: list[str] = []
    for dep in draft.depends_on:
        if dep != task_id and dep not in depends_on:
            depends_on.append(dep)

    return Task(
        id=task_id,
        project_id=draft.project_id,
        name=draft.name.strip(),
        milestone=draft.milestone,
        start_date=draft.start_date,
        end_date=draft.end_date,
        status=TaskStatus.NOT_STARTED,
        depends_on=tuple(depends_on),
    )


def commit_task(
    actor: User,
    command: AddTaskCommand,
    existing_tasks: Sequence[Task],
) -> tuple[Task, ...] | ValidationErrors:
    """Validate a draft against the task set and return the new task set.

    Only owners may add tasks. Dependency problems are reported under the
    ``depends_on`` field.
    """
    if not actor.is_owner:
        raise PermissionDeniedError(actor, "add tasks")

    result = prepare_task(command, existing_tasks)
    if isinstance(result, ValidationErrors):
        return result

    candidate = (*existing_tasks, result)
    problems = validate_task(result, candidate)
    if problems:
        logger.debug("Rejected task %s: %d dependency problem(s)", result.id, len(problems))
        return ValidationErrors(depends_on="; ".join(e.describe() for e in problems))

    logger.debug("Accepted task %s (%s)", result.id, result.name)
    return candidate


def set_task_status(
    tasks: Sequence[Task],
    task_id: str,
    status: TaskStatus,
) -> tuple[Task, ...]:
    """Return a new task set with one task's declared status replaced."""
    if not any(t.id == task_id for t in tasks):
        raise KeyError(task_id)
    return tuple(t.with_status(status) if t.id == task_id else t for t in tasks)


def prepare_report(draft: ReportDraft) -> DailyReport | ValidationErrors:
    errors = ValidationErrors()
    if not draft.project_id:
        errors["project_id"] = "Project is required."
    if not draft.engineer_id:
        errors["engineer_id"] = "Engineer is required."
    if draft.date is None:
        errors["date"] = "Date is required."
    if errors:
        return errors
    return DailyReport(
        project_id=draft.project_id,
        engineer_id=draft.engineer_id,
        date=draft.date,
        notes=draft.notes,
        present=draft.present,
        photos=tuple(draft.photos),
    )


def append_report(reports: Sequence[DailyReport], report: DailyReport) -> tuple[DailyReport, ...]:
    return (*reports, report)

