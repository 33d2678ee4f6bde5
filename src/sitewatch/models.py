"""Entity records and status definitions."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import date


class UserRole(enum.StrEnum):
    OWNER = "OWNER"
    ENGINEER = "ENGINEER"


class Milestone(enum.StrEnum):
    FOUNDATION = "Foundation"
    STRUCTURE = "Structure"
    FINISHING = "Finishing"
    HANDOVER = "Handover"


MILESTONE_ORDER: tuple[Milestone, ...] = tuple(Milestone)


class TaskStatus(enum.StrEnum):
    """Status stored on a task and set directly by users."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    DELAYED = "DELAYED"
    COMPLETED = "COMPLETED"


class EffectiveStatus(enum.StrEnum):
    """Status shown on the timeline. Derived, never persisted."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    DELAYED = "DELAYED"
    COMPLETED = "COMPLETED"
    BLOCKED = "BLOCKED"

    @classmethod
    def from_declared(cls, status: TaskStatus) -> EffectiveStatus:
        return cls(status.value)


def _parse_date(value: str | date) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


@dataclass(frozen=True)
class User:
    id: str
    name: str
    role: UserRole

    @property
    def is_owner(self) -> bool:
        return self.role == UserRole.OWNER

    def to_dict(self) -> dict:
        return {"name": self.name, "role": self.role.value}

    @classmethod
    def from_dict(cls, user_id: str, d: dict) -> User:
        return cls(id=user_id, name=d["name"], role=UserRole(d["role"]))


@dataclass(frozen=True)
class Project:
    """A construction site. Progress is the stored 0-100 percentage."""

    id: str
    name: str
    location: str
    start_date: date
    target_end_date: date
    progress: int = 0

    def with_progress(self, progress: int) -> Project:
        return replace(self, progress=max(0, min(100, int(progress))))

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "location": self.location,
            "start_date": self.start_date.isoformat(),
            "target_end_date": self.target_end_date.isoformat(),
            "progress": self.progress,
        }

    @classmethod
    def from_dict(cls, project_id: str, d: dict) -> Project:
        return cls(
            id=project_id,
            name=d["name"],
            location=d.get("location", ""),
            start_date=_parse_date(d["start_date"]),
            target_end_date=_parse_date(d["target_end_date"]),
            progress=max(0, min(100, int(d.get("progress", 0)))),
        )


@dataclass(frozen=True)
class Task:
    """A unit of site work within one project and one milestone."""

    id: str
    project_id: str
    name: str
    milestone: Milestone
    start_date: date
    end_date: date
    status: TaskStatus = TaskStatus.NOT_STARTED
    depends_on: tuple[str, ...] = field(default_factory=tuple)

    def with_status(self, status: TaskStatus) -> Task:
        return replace(self, status=status)

    def to_dict(self) -> dict:
        return {
            "project_id": self.project_id,
            "name": self.name,
            "milestone": self.milestone.value,
            "status": self.status.value,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "depends_on": list(self.depends_on),
        }

    @classmethod
    def from_dict(cls, task_id: str, d: dict) -> Task:
        return cls(
            id=task_id,
            project_id=d["project_id"],
            name=d["name"],
            milestone=Milestone(d["milestone"]),
            status=TaskStatus(d.get("status", "NOT_STARTED")),
            start_date=_parse_date(d["start_date"]),
            end_date=_parse_date(d["end_date"]),
            depends_on=tuple(d.get("depends_on") or ()),
        )


@dataclass(frozen=True)
class DailyReport:
    """One engineer's site log entry for a day. Append-only."""

    project_id: str
    engineer_id: str
    date: date
    notes: str = ""
    present: bool = True
    photos: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "project_id": self.project_id,
            "engineer_id": self.engineer_id,
            "date": self.date.isoformat(),
            "notes": self.notes,
            "present": self.present,
            "photos": list(self.photos),
        }

    @classmethod
    def from_dict(cls, d: dict) -> DailyReport:
        return cls(
            project_id=d["project_id"],
            engineer_id=d["engineer_id"],
            date=_parse_date(d["date"]),
            notes=d.get("notes", ""),
            present=d.get("present", True),
            photos=tuple(d.get("photos") or ()),
        )
