from datetime import date
from sitewatch.models import (
    MILESTONE_ORDER,
    DailyReport,
    EffectiveStatus,
    Milestone,
    Project,
    Task,
    TaskStatus,
    User,
    UserRole,
)

def test_task_serialization():
    t = Task(
        id="t3",
        project_id="p1",
        name="Column Casting",
        milestone=Milestone.STRUCTURE,
        start_date=date(2024, 3, 21),
        end_date=date(2024, 5, 15),
        status=TaskStatus.IN_PROGRESS,
        depends_on=("t2",),
    )
    d = t.to_dict()
    assert d["milestone"] == "Structure"
    assert d["status"] == "IN_PROGRESS"
    assert d["end_date"] == "2024-05-15"
    assert d["depends_on"] == ["t2"]

    t2 = Task.from_dict("t3", d)
    assert t2 == t

def test_task_from_dict_defaults():
    t = Task.from_dict("t9", {
        "project_id": "p1",
        "name": "Handover walk",
        "milestone": "Handover",
        "start_date": "2024-12-01",
        "end_date": "2024-12-02",
    })
    assert t.status == TaskStatus.NOT_STARTED
    assert t.depends_on == ()

def test_with_status_returns_copy():
    t = Task("t1", "p1", "Excavation", Milestone.FOUNDATION, date(2024, 1, 1), date(2024, 1, 5))
    done = t.with_status(TaskStatus.COMPLETED)
    assert done.status == TaskStatus.COMPLETED
    assert t.status == TaskStatus.NOT_STARTED

def test_project_progress_is_clamped():
    p = Project.from_dict("p1", {
        "name": "Villa",
        "location": "Pune",
        "start_date": "2024-01-01",
        "target_end_date": "2024-12-31",
        "progress": 140,
    })
    assert p.progress == 100
    assert p.with_progress(-5).progress == 0

def test_report_and_user_serialization():
    r = DailyReport("p1", "amit.s", date(2024, 5, 2), "Slab poured", False, ("a.jpg", "b.jpg"))
    assert DailyReport.from_dict(r.to_dict()) == r

    u = User("jane.smith", "Jane Smith", UserRole.OWNER)
    assert User.from_dict("jane.smith", u.to_dict()) == u
    assert u.is_owner

def test_milestone_order_is_fixed():
    assert [m.value for m in MILESTONE_ORDER] == ["Foundation", "Structure", "Finishing", "Handover"]

def test_effective_status_mirrors_declared_values():
    for s in TaskStatus:
        assert EffectiveStatus.from_declared(s).value == s.value
