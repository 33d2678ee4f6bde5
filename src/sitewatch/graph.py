"""Task dependency graph construction and validation."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import networkx as nx

from sitewatch.models import Task

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphError(ABC):
    project_id: str

    @abstractmethod
    def describe(self) -> str: ...


@dataclass(frozen=True)
class SelfDependency(GraphError):
    task_id: str

    def describe(self) -> str:
        return f"Task {self.task_id} depends on itself"


@dataclass(frozen=True)
class DanglingDependency(GraphError):
    task_id: str
    dependency_id: str

    def describe(self) -> str:
        return f"Task {self.task_id} depends on unknown task {self.dependency_id}"


@dataclass(frozen=True)
class CyclicDependency(GraphError):
    cycle: tuple[str, ...]

    def describe(self) -> str:
        path = " -> ".join((*self.cycle, self.cycle[0]))
        return f"Circular dependency detected: {path}"


class DependencyGraphError(ValueError):
    """Raised where an invalid dependency graph must not be accepted."""

    def __init__(self, errors: Sequence[GraphError]):
        self.errors = list(errors)
        super().__init__("; ".join(e.describe() for e in self.errors))


def _by_project(tasks: Iterable[Task]) -> dict[str, list[Task]]:
    projects: dict[str, list[Task]] = {}
    for task in tasks:
        projects.setdefault(task.project_id, []).append(task)
    return projects


def build_graph(tasks: Sequence[Task]) -> tuple[nx.DiGraph, list[GraphError]]:
    """Build the dependency graph of one project's tasks.

    An edge A -> B means A depends on B. Self references and ids that are
    not among *tasks* are left out of the graph and returned as errors.
    """
    G = nx.DiGraph()
    errors: list[GraphError] = []
    for task in tasks:
        G.add_node(task.id, task=task)
    for task in tasks:
        for dep in task.depends_on:
            if dep == task.id:
                errors.append(SelfDependency(task.project_id, task.id))
            elif dep not in G:
                errors.append(DanglingDependency(task.project_id, task.id, dep))
            else:
                G.add_edge(task.id, dep)
    return G, errors


def find_cycle(G: nx.DiGraph) -> tuple[str, ...] | None:
    """Return the first cycle found by depth-first search, or None."""
    try:
        edges = nx.find_cycle(G)
    except nx.NetworkXNoCycle:
        return None
    return tuple(u for u, _ in edges)


def validate(tasks: Sequence[Task]) -> list[GraphError]:
    """Check every project's dependency graph.

    Reports each self reference and each unknown dependency, plus the first
    cycle discovered in each project. An empty list means the graph is valid.
    """
    errors: list[GraphError] = []
    for project_id, project_tasks in _by_project(tasks).items():
        G, project_errors = build_graph(project_tasks)
        errors.extend(project_errors)
        cycle = find_cycle(G)
        if cycle is not None:
            errors.append(CyclicDependency(project_id, cycle))
    if errors:
        logger.debug("Dependency validation found %d problem(s)", len(errors))
    return errors


def require_acyclic(tasks: Sequence[Task]) -> None:
    errors = validate(tasks)
    if errors:
        raise DependencyGraphError(errors)


def dependents(task_id: str, tasks: Iterable[Task]) -> list[str]:
    """Ids of the tasks that list *task_id* as a dependency."""
    return [t.id for t in tasks if task_id in t.depends_on and t.id != task_id]


def validate_task(task: Task, tasks: Sequence[Task]) -> list[GraphError]:
    """Problems that *task* itself introduces into its project's graph.

    *tasks* must already contain *task*. Problems elsewhere in the project
    are not reported, so an old defect never blocks unrelated work.
    """
    project_tasks = [t for t in tasks if t.project_id == task.project_id]
    G, errors = build_graph(project_tasks)
    errors = [e for e in errors if e.task_id == task.id]
    for dep in G.successors(task.id):
        if nx.has_path(G, dep, task.id):
            path = nx.shortest_path(G, dep, task.id)
            errors.append(CyclicDependency(task.project_id, (task.id, *path[:-1])))
            break
    return errors
