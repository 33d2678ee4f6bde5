from datetime import date

from sitewatch.models import EffectiveStatus, Milestone, Task, TaskStatus
from sitewatch.status import dependency_tasks, effective_status, resolve_each, resolve_statuses

TODAY = date(2024, 6, 1)


def _task(tid, status=TaskStatus.NOT_STARTED, end=date(2024, 7, 1), deps=(), project="p1"):
    return Task(tid, project, f"Task {tid}", Milestone.STRUCTURE,
                date(2024, 4, 1), end, status, tuple(deps))


def test_overdue_task_is_delayed():
    t = _task("t1", TaskStatus.IN_PROGRESS, end=date(2024, 5, 1))
    assert effective_status(t, TODAY) == EffectiveStatus.DELAYED


def test_completed_is_never_overridden():
    t = _task("t1", TaskStatus.COMPLETED, end=date(2020, 1, 1))
    assert effective_status(t, TODAY) == EffectiveStatus.COMPLETED
    blocker = _task("t0", TaskStatus.NOT_STARTED)
    assert effective_status(t, TODAY, [blocker]) == EffectiveStatus.COMPLETED


def test_end_date_today_is_not_overdue():
    t = _task("t1", TaskStatus.IN_PROGRESS, end=TODAY)
    assert effective_status(t, TODAY) == EffectiveStatus.IN_PROGRESS


def test_unfinished_dependency_blocks():
    dep = _task("t1", TaskStatus.IN_PROGRESS)
    t = _task("t2", TaskStatus.NOT_STARTED, deps=["t1"])
    assert effective_status(t, TODAY, [dep]) == EffectiveStatus.BLOCKED


def test_overdue_takes_precedence_over_blocked():
    dep = _task("t1", TaskStatus.NOT_STARTED)
    t = _task("t2", TaskStatus.IN_PROGRESS, end=date(2024, 5, 1), deps=["t1"])
    assert effective_status(t, TODAY, [dep]) == EffectiveStatus.DELAYED


def test_finished_dependencies_keep_declared_status():
    dep = _task("t1", TaskStatus.COMPLETED, end=date(2024, 1, 1))
    t = _task("t2", TaskStatus.IN_PROGRESS, deps=["t1"])
    assert effective_status(t, TODAY, [dep]) == EffectiveStatus.IN_PROGRESS
    declared_delay = _task("t3", TaskStatus.DELAYED)
    assert effective_status(declared_delay, TODAY) == EffectiveStatus.DELAYED


def test_resolver_is_idempotent():
    dep = _task("t1", TaskStatus.IN_PROGRESS)
    t = _task("t2", deps=["t1"])
    first = effective_status(t, TODAY, [dep])
    assert effective_status(t, TODAY, [dep]) == first
    assert t.status == TaskStatus.NOT_STARTED


def test_resolve_statuses_end_to_end():
    tasks = [
        _task("t1", TaskStatus.IN_PROGRESS, end=date(2024, 5, 1)),
        _task("t2", TaskStatus.NOT_STARTED, end=date(2024, 9, 1), deps=["t1"]),
    ]
    statuses = resolve_statuses(tasks, TODAY)
    assert statuses == {"t1": EffectiveStatus.DELAYED, "t2": EffectiveStatus.BLOCKED}


def test_dependency_tasks_skip_unknown_and_foreign_ids():
    tasks = [
        _task("t1"),
        _task("t2", project="p2"),
        _task("t3", deps=["t1", "t2", "t3", "missing"]),
    ]
    by_id = {t.id: t for t in tasks}
    assert [d.id for d in dependency_tasks(by_id["t3"], by_id)] == ["t1"]


def test_same_task_id_in_two_projects():
    tasks = [
        _task("t1", TaskStatus.IN_PROGRESS, end=date(2024, 5, 1), project="p1"),
        _task("t1", TaskStatus.COMPLETED, end=date(2024, 5, 1), project="p2"),
        _task("t2", TaskStatus.NOT_STARTED, deps=["t1"], project="p1"),
        _task("t2", TaskStatus.NOT_STARTED, deps=["t1"], project="p2"),
    ]
    resolved = [(t.project_id, t.id, s) for t, s in resolve_each(tasks, TODAY)]
    assert resolved == [
        ("p1", "t1", EffectiveStatus.DELAYED),
        ("p2", "t1", EffectiveStatus.COMPLETED),
        ("p1", "t2", EffectiveStatus.BLOCKED),
        ("p2", "t2", EffectiveStatus.NOT_STARTED),
    ]
