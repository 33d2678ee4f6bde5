from datetime import date

import pytest

from sitewatch.graph import (
    CyclicDependency,
    DanglingDependency,
    DependencyGraphError,
    GraphError,
    SelfDependency,
    dependents,
    require_acyclic,
    validate,
    validate_task,
)
from sitewatch.models import Milestone, Task


def _task(tid, deps=(), project="p1"):
    return Task(tid, project, f"Task {tid}", Milestone.FOUNDATION,
                date(2024, 1, 1), date(2024, 1, 10), depends_on=tuple(deps))


def test_valid_graph_has_no_errors():
    tasks = [_task("t1"), _task("t2", ["t1"]), _task("t3", ["t1", "t2"])]
    assert validate(tasks) == []
    require_acyclic(tasks)


def test_self_dependency():
    errors = validate([_task("t1", ["t1"])])
    assert errors == [SelfDependency("p1", "t1")]


def test_dangling_dependency():
    errors = validate([_task("t1", ["t99"])])
    assert errors == [DanglingDependency("p1", "t1", "t99")]


def test_dependency_in_other_project_is_dangling():
    tasks = [_task("t1", project="p1"), _task("t2", ["t1"], project="p2")]
    errors = validate(tasks)
    assert errors == [DanglingDependency("p2", "t2", "t1")]


def test_two_cycle():
    errors = validate([_task("t1", ["t2"]), _task("t2", ["t1"])])
    assert len(errors) == 1
    assert isinstance(errors[0], CyclicDependency)
    assert set(errors[0].cycle) == {"t1", "t2"}


def test_three_cycle():
    tasks = [_task("t1", ["t3"]), _task("t2", ["t1"]), _task("t3", ["t2"]), _task("t4", ["t1"])]
    errors = validate(tasks)
    assert len(errors) == 1
    cycle = errors[0].cycle
    assert set(cycle) == {"t1", "t2", "t3"}
    # consecutive ids follow the depends-on edges
    by_id = {t.id: t for t in tasks}
    for a, b in zip(cycle, cycle[1:] + cycle[:1]):
        assert b in by_id[a].depends_on


def test_reports_every_problem():
    tasks = [_task("t1", ["t1"]), _task("t2", ["missing"]), _task("t3", ["t4"]), _task("t4", ["t3"])]
    kinds = {type(e) for e in validate(tasks)}
    assert kinds == {SelfDependency, DanglingDependency, CyclicDependency}


def test_require_acyclic_raises():
    with pytest.raises(DependencyGraphError) as exc:
        require_acyclic([_task("t1", ["t2"]), _task("t2", ["t1"])])
    assert "Circular dependency" in str(exc.value)
    assert isinstance(exc.value, ValueError)


def test_validate_task_reports_cycle_through_task():
    # t1 already points at the not-yet-added t3
    tasks = [_task("t1", ["t3"]), _task("t2", ["t1"]), _task("t3", ["t2"])]
    errors = validate_task(tasks[2], tasks)
    assert len(errors) == 1
    assert errors[0].cycle == ("t3", "t2", "t1")


def test_validate_task_ignores_unrelated_problems():
    tasks = [_task("t1", ["t2"]), _task("t2", ["t1"]), _task("t3", ["t1"])]
    assert validate_task(tasks[2], tasks) == []


def test_dependents():
    tasks = [_task("t1"), _task("t2", ["t1"]), _task("t3", ["t1"]), _task("t4", ["t2"])]
    assert dependents("t1", tasks) == ["t2", "t3"]
    assert dependents("t4", tasks) == []


def test_describe_messages():
    assert CyclicDependency("p1", ("t1", "t2")).describe() == "Circular dependency detected: t1 -> t2 -> t1"
    assert "unknown task t9" in DanglingDependency("p1", "t1", "t9").describe()
    assert "itself" in SelfDependency("p1", "t1").describe()


def test_graph_error_base_is_abstract():
    with pytest.raises(TypeError):
        GraphError("p1")
