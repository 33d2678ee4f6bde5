"""JSON file persistence for users, projects, tasks and daily reports."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import date
from pathlib import Path

from sitewatch.config import settings
from sitewatch.models import (
    DailyReport,
    Milestone,
    Project,
    Task,
    TaskStatus,
    User,
    UserRole,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """Everything the dashboard works on, as immutable collections."""

    users: tuple[User, ...] = field(default_factory=tuple)
    projects: tuple[Project, ...] = field(default_factory=tuple)
    tasks: tuple[Task, ...] = field(default_factory=tuple)
    reports: tuple[DailyReport, ...] = field(default_factory=tuple)

    def user(self, user_id: str) -> User | None:
        return next((u for u in self.users if u.id == user_id), None)

    def project(self, project_id: str) -> Project | None:
        return next((p for p in self.projects if p.id == project_id), None)

    def task(self, task_id: str) -> Task | None:
        return next((t for t in self.tasks if t.id == task_id), None)

    def project_tasks(self, project_id: str) -> list[Task]:
        return [t for t in self.tasks if t.project_id == project_id]

    def project_reports(self, project_id: str) -> list[DailyReport]:
        return [r for r in self.reports if r.project_id == project_id]

    def evolve(self, **changes) -> Snapshot:
        return replace(self, **changes)


class Store:
    """Reads and writes the site database (JSON file)."""

    def __init__(self, db_path: str | Path | None = None):
        self.db_path = Path(db_path if db_path is not None else settings.DB_PATH)

    def exists(self) -> bool:
        return self.db_path.exists()

    def load(self) -> Snapshot:
        """Return the stored snapshot, or an empty one if there is no file."""
        if not self.db_path.exists():
            return Snapshot()

        raw = json.loads(self.db_path.read_text())
        return Snapshot(
            users=tuple(User.from_dict(uid, d) for uid, d in raw.get("users", {}).items()),
            projects=tuple(Project.from_dict(pid, d) for pid, d in raw.get("projects", {}).items()),
            tasks=tuple(Task.from_dict(tid, d) for tid, d in raw.get("tasks", {}).items()),
            reports=tuple(DailyReport.from_dict(d) for d in raw.get("reports", [])),
        )

    def save(self, snapshot: Snapshot) -> None:
        """Persist the snapshot to disk, replacing the previous contents."""
        raw = {
            "users": {u.id: u.to_dict() for u in snapshot.users},
            "projects": {p.id: p.to_dict() for p in snapshot.projects},
            "tasks": {t.id: t.to_dict() for t in snapshot.tasks},
            "reports": [r.to_dict() for r in snapshot.reports],
        }
        self.db_path.write_text(json.dumps(raw, indent=4))
        logger.debug(
            "Saved %d project(s), %d task(s), %d report(s) to %s",
            len(snapshot.projects), len(snapshot.tasks), len(snapshot.reports), self.db_path,
        )

    def seed(self) -> Snapshot:
        """Write the demo data set and return it."""
        snapshot = demo_snapshot()
        self.save(snapshot)
        return snapshot


def demo_snapshot() -> Snapshot:
    users = (
        User("jane.smith", "Jane Smith", UserRole.OWNER),
        User("amit.s", "Amit Sharma", UserRole.ENGINEER),
        User("rahul.v", "Rahul Verma", UserRole.ENGINEER),
    )
    projects = (
        Project("p1", "Greenwood Villa", "Pune", date(2024, 1, 15), date(2024, 12, 20), 45),
        Project("p2", "Lakeside Residency", "Nashik", date(2024, 3, 1), date(2025, 6, 30), 20),
    )
    tasks = (
        Task("t1", "p1", "Site Excavation", Milestone.FOUNDATION,
             date(2024, 1, 15), date(2024, 2, 10), TaskStatus.COMPLETED),
        Task("t2", "p1", "Footing & Plinth", Milestone.FOUNDATION,
             date(2024, 2, 11), date(2024, 3, 20), TaskStatus.COMPLETED, ("t1",)),
        Task("t3", "p1", "Column Casting", Milestone.STRUCTURE,
             date(2024, 3, 21), date(2024, 5, 15), TaskStatus.IN_PROGRESS, ("t2",)),
        Task("t4", "p1", "Slab Work", Milestone.STRUCTURE,
             date(2024, 5, 16), date(2024, 7, 30), TaskStatus.NOT_STARTED, ("t3",)),
        Task("t5", "p1", "Plastering", Milestone.FINISHING,
             date(2024, 8, 1), date(2024, 10, 15), TaskStatus.NOT_STARTED, ("t4",)),
        Task("t6", "p1", "Final Inspection", Milestone.HANDOVER,
             date(2024, 12, 1), date(2024, 12, 20), TaskStatus.NOT_STARTED, ("t5",)),
        Task("t7", "p2", "Soil Testing", Milestone.FOUNDATION,
             date(2024, 3, 1), date(2024, 3, 20), TaskStatus.COMPLETED),
        Task("t8", "p2", "Raft Foundation", Milestone.FOUNDATION,
             date(2024, 3, 21), date(2024, 6, 30), TaskStatus.DELAYED, ("t7",)),
    )
    reports = (
        DailyReport("p1", "amit.s", date(2024, 5, 2), "Columns on grid B cast, curing in progress.",
                    True, ("photos/p1/2024-05-02-columns.jpg",)),
        DailyReport("p2", "rahul.v", date(2024, 5, 2), "Raft reinforcement waiting on steel delivery.",
                    True),
        DailyReport("p1", "amit.s", date(2024, 5, 3), "Absent, site visit rescheduled.", False),
    )
    return Snapshot(users=users, projects=projects, tasks=tasks, reports=reports)
