from datetime import date

import pytest

from sitewatch.milestones import (
    ALL,
    filter_by_status,
    group_by_milestone,
    is_milestone_complete,
    parse_status_filter,
    timeline,
)
from sitewatch.models import Milestone, Task, TaskStatus


def _task(tid, milestone, status=TaskStatus.NOT_STARTED):
    return Task(tid, "p1", f"Task {tid}", milestone, date(2024, 1, 1), date(2024, 2, 1), status)


TASKS = [
    _task("t1", Milestone.HANDOVER),
    _task("t2", Milestone.FOUNDATION, TaskStatus.COMPLETED),
    _task("t3", Milestone.FINISHING, TaskStatus.IN_PROGRESS),
    _task("t4", Milestone.FOUNDATION, TaskStatus.IN_PROGRESS),
]


def test_filter_by_status_preserves_order():
    assert filter_by_status(TASKS, ALL) == TASKS
    assert [t.id for t in filter_by_status(TASKS, TaskStatus.IN_PROGRESS)] == ["t3", "t4"]
    assert filter_by_status(TASKS, TaskStatus.DELAYED) == []


def test_group_by_milestone_fixed_order():
    groups = group_by_milestone(TASKS)
    assert [m for m, _ in groups] == [Milestone.FOUNDATION, Milestone.FINISHING, Milestone.HANDOVER]
    assert [t.id for t in groups[0][1]] == ["t2", "t4"]


def test_group_by_milestone_omits_empty_after_filter():
    groups = group_by_milestone(TASKS, TaskStatus.IN_PROGRESS)
    assert [m for m, _ in groups] == [Milestone.FOUNDATION, Milestone.FINISHING]
    assert group_by_milestone(TASKS, TaskStatus.DELAYED) == []


def test_is_milestone_complete():
    done = [_task("t1", Milestone.STRUCTURE, TaskStatus.COMPLETED),
            _task("t2", Milestone.STRUCTURE, TaskStatus.COMPLETED)]
    assert is_milestone_complete(done)
    assert not is_milestone_complete(done + [_task("t3", Milestone.STRUCTURE)])
    assert is_milestone_complete([])


def test_timeline_judges_completion_on_unfiltered_tasks():
    groups = timeline(TASKS, TaskStatus.COMPLETED)
    assert len(groups) == 1
    assert groups[0].milestone == Milestone.FOUNDATION
    assert [t.id for t in groups[0].tasks] == ["t2"]
    assert groups[0].complete is False


def test_parse_status_filter():
    assert parse_status_filter(None) == ALL
    assert parse_status_filter("all") == ALL
    assert parse_status_filter("in_progress") == TaskStatus.IN_PROGRESS
    with pytest.raises(ValueError):
        parse_status_filter("paused")
