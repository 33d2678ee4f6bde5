"""Typer CLI for SiteWatch."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from sitewatch.config import settings
from sitewatch.graph import dependents, validate
from sitewatch.ingestion import (
    AddTaskCommand,
    PermissionDeniedError,
    ReportDraft,
    TaskDraft,
    ValidationErrors,
    append_report,
    commit_task,
    prepare_report,
    set_task_status,
)
from sitewatch.milestones import parse_status_filter, timeline as build_timeline
from sitewatch.models import EffectiveStatus, Milestone, Project, TaskStatus, User
from sitewatch.narrative import LatestNarrative, NarrativeClient
from sitewatch.persistence import Snapshot, Store
from sitewatch.progress import dashboard_summary, task_completion
from sitewatch.status import resolve_statuses

app = typer.Typer(
    name="sitewatch",
    help="Construction site monitoring: timelines, daily logs and delay analysis.",
    no_args_is_help=True,
)
console = Console()

STATUS_STYLES = {
    EffectiveStatus.COMPLETED: "green",
    EffectiveStatus.IN_PROGRESS: "blue",
    EffectiveStatus.DELAYED: "bold red",
    EffectiveStatus.BLOCKED: "yellow",
    EffectiveStatus.NOT_STARTED: "dim",
}

TodayOption = Annotated[
    Optional[str],
    typer.Option("--today", help="Evaluate as of this date (YYYY-MM-DD). Defaults to today."),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
) -> None:
    level = logging.DEBUG if verbose else settings.LOG_LEVEL.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _get_store() -> Store:
    return Store()


def _parse_date(value: str | None, label: str = "date") -> date:
    if value is None:
        return date.today()
    try:
        return date.fromisoformat(value)
    except ValueError:
        console.print(f"[red]Invalid {label} '{value}'. Use YYYY-MM-DD.[/red]")
        raise typer.Exit(1)


def _load() -> Snapshot:
    store = _get_store()
    if not store.exists():
        console.print("[red]No site database found. Run 'sitewatch init' first.[/red]")
        raise typer.Exit(1)
    return store.load()


def _require_project(snapshot: Snapshot, project_id: str) -> Project:
    project = snapshot.project(project_id)
    if project is None:
        console.print(f"[red]Project {project_id} not found.[/red]")
        raise typer.Exit(1)
    return project


def _require_user(snapshot: Snapshot, user_id: str) -> User:
    user = snapshot.user(user_id)
    if user is None:
        console.print(f"[red]User {user_id} not found.[/red]")
        raise typer.Exit(1)
    return user


def _print_errors(errors: ValidationErrors) -> None:
    for field_name, message in errors.items():
        console.print(f"[red]{field_name}: {message}[/red]")


def _bar(pct: int, width: int = 20) -> str:
    filled = int(width * pct / 100)
    return "█" * filled + "░" * (width - filled)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def init(
    force: Annotated[bool, typer.Option("--force", help="Overwrite an existing database")] = False,
) -> None:
    """Create the site database with demo users, projects and tasks."""
    store = _get_store()
    if store.exists() and not force:
        console.print(f"[red]{store.db_path} already exists. Use --force to overwrite.[/red]")
        raise typer.Exit(1)
    snapshot = store.seed()
    console.print(
        f"[green]Initialized {store.db_path} with {len(snapshot.projects)} project(s) "
        f"and {len(snapshot.tasks)} task(s).[/green]"
    )


@app.command()
def dashboard(today: TodayOption = None) -> None:
    """Portfolio overview: summary cards, project progress and recent activity."""
    current = _parse_date(today, "--today")
    snapshot = _load()
    summary = dashboard_summary(snapshot.projects, snapshot.tasks, snapshot.users, current)

    console.print("\n[bold underline]Dashboard[/bold underline]\n")
    console.print(f"  Total projects: [bold]{summary.total_projects}[/bold]")
    console.print(f"  Site engineers: [bold]{summary.site_engineers}[/bold]")
    console.print(f"  Delayed tasks:  [bold red]{summary.delayed_tasks}[/bold red]")
    console.print(f"  Avg progress:   [bold]{summary.average_progress}%[/bold]")

    if snapshot.projects:
        console.print()
        for p in snapshot.projects:
            console.print(f"  {p.id:<4} {_bar(p.progress)} {p.progress:>3}%  {p.name}")

    if snapshot.reports:
        console.print("\n[bold underline]Recent activity[/bold underline]")
        for r in snapshot.reports[-5:][::-1]:
            engineer = snapshot.user(r.engineer_id)
            project = snapshot.project(r.project_id)
            mark = "[green]●[/green]" if r.present else "[red]●[/red]"
            who = engineer.name if engineer else r.engineer_id
            where = project.name if project else r.project_id
            console.print(f"  {mark} {r.date.isoformat()}  {who} updated {where}")
    console.print()


@app.command()
def projects() -> None:
    """List all projects."""
    snapshot = _load()
    if not snapshot.projects:
        console.print("No projects found.")
        return

    table = Table(title="Projects")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Location")
    table.add_column("Start")
    table.add_column("Target")
    table.add_column("Progress")

    for p in snapshot.projects:
        table.add_row(
            p.id,
            p.name,
            p.location,
            p.start_date.isoformat(),
            p.target_end_date.isoformat(),
            f"{p.progress}%",
        )
    console.print(table)


@app.command()
def timeline(
    project_id: str,
    status_filter: Annotated[
        Optional[str],
        typer.Option("--status", "-s", help="Filter by status (ALL, NOT_STARTED, IN_PROGRESS, DELAYED, COMPLETED)"),
    ] = None,
    today: TodayOption = None,
) -> None:
    """Show a project's tasks grouped by milestone."""
    current = _parse_date(today, "--today")
    try:
        status = parse_status_filter(status_filter)
    except ValueError:
        valid = ", ".join(["ALL", *(s.value for s in TaskStatus)])
        console.print(f"[red]Invalid status '{status_filter}'. Use: {valid}[/red]")
        raise typer.Exit(1)

    snapshot = _load()
    project = _require_project(snapshot, project_id)
    tasks = snapshot.project_tasks(project.id)
    by_id = {t.id: t for t in tasks}
    statuses = resolve_statuses(tasks, current)

    console.print(f"\n[bold]{project.name}[/bold]  {project.location}")
    console.print(f"  {project.start_date.isoformat()} to {project.target_end_date.isoformat()}  {project.progress}%")

    groups = build_timeline(tasks, status)
    if not groups:
        suffix = f" with the status {status}" if status_filter else ""
        console.print(f"\n  [dim]No tasks found{suffix}.[/dim]\n")
        return

    for group in groups:
        mark = "[green]✔[/green]" if group.complete else "○"
        console.print(f"\n  {mark} [bold]{group.milestone.value.upper()}[/bold]")
        for t in group.tasks:
            eff = statuses[t.id]
            console.print(
                f"    [bold]{t.id}[/bold] {t.name}  "
                f"[{STATUS_STYLES[eff]}]{eff.value}[/{STATUS_STYLES[eff]}]"
            )
            console.print(f"      {t.start_date.isoformat()} to {t.end_date.isoformat()}")
            badges = []
            for dep in t.depends_on:
                dep_task = by_id.get(dep)
                if dep_task is None:
                    continue
                if dep_task.status == TaskStatus.COMPLETED:
                    badges.append(f"[green]{dep_task.name} ✔[/green]")
                else:
                    badges.append(f"[blue]{dep_task.name}[/blue]")
            if badges:
                console.print(f"      Depends on: {', '.join(badges)}")
    console.print()


@app.command()
def show(task_id: str, today: TodayOption = None) -> None:
    """Show all details for a single task."""
    current = _parse_date(today, "--today")
    snapshot = _load()
    t = snapshot.task(task_id)
    if t is None:
        console.print(f"[red]Task {task_id} not found.[/red]")
        raise typer.Exit(1)

    statuses = resolve_statuses(snapshot.project_tasks(t.project_id), current)
    console.print(f"\n[bold]{t.id}[/bold]  {t.name}")
    console.print(f"  Project:    {t.project_id}")
    console.print(f"  Milestone:  {t.milestone.value}")
    console.print(f"  Declared:   {t.status.value}")
    console.print(f"  Effective:  {statuses[t.id].value}")
    console.print(f"  Dates:      {t.start_date.isoformat()} to {t.end_date.isoformat()}")
    console.print(f"  Depends on: {', '.join(t.depends_on) or 'none'}")
    console.print(f"  Blocks:     {', '.join(dependents(t.id, snapshot.project_tasks(t.project_id))) or 'none'}")
    console.print()


@app.command("add-task")
def add_task(
    project_id: str,
    name: str,
    actor_id: Annotated[str, typer.Option("--as", help="User id performing the change")],
    milestone: Annotated[Optional[str], typer.Option("--milestone", "-m", help="Foundation, Structure, Finishing or Handover")] = None,
    start: Annotated[Optional[str], typer.Option(help="Start date (YYYY-MM-DD)")] = None,
    end: Annotated[Optional[str], typer.Option(help="End date (YYYY-MM-DD)")] = None,
    depends: Annotated[Optional[list[str]], typer.Option("--depends", help="Task IDs this depends on")] = None,
) -> None:
    """Add a new task to a project (owners only).

    Dependencies can be specified individually (--depends t1 --depends t2)
    or comma-separated (--depends t1,t2).
    """
    store = _get_store()
    snapshot = _load()
    project = _require_project(snapshot, project_id)
    actor = _require_user(snapshot, actor_id)

    milestone_value = None
    if milestone:
        try:
            milestone_value = Milestone(milestone.capitalize())
        except ValueError:
            valid = ", ".join(m.value for m in Milestone)
            console.print(f"[red]Invalid milestone '{milestone}'. Use: {valid}[/red]")
            raise typer.Exit(1)

    expanded_deps: list[str] = []
    for d in depends or []:
        expanded_deps.extend(part.strip() for part in d.split(",") if part.strip())

    draft = TaskDraft(
        project_id=project.id,
        name=name,
        milestone=milestone_value,
        start_date=_parse_date(start, "--start") if start else None,
        end_date=_parse_date(end, "--end") if end else None,
        depends_on=expanded_deps,
    )
    try:
        result = commit_task(actor, AddTaskCommand(draft), snapshot.tasks)
    except PermissionDeniedError as e:
        console.print(f"[red]{e}.[/red]")
        raise typer.Exit(1)

    if isinstance(result, ValidationErrors):
        _print_errors(result)
        raise typer.Exit(1)

    store.save(snapshot.evolve(tasks=result))
    new_task = result[-1]
    console.print(f"[green]Added '{new_task.name}' as {new_task.id}[/green]")


@app.command("set-status")
def set_status(
    task_id: str,
    status: Annotated[str, typer.Argument(help="NOT_STARTED, IN_PROGRESS, DELAYED or COMPLETED")],
) -> None:
    """Change a task's declared status."""
    try:
        new_status = TaskStatus(status.upper())
    except ValueError:
        valid = ", ".join(s.value for s in TaskStatus)
        console.print(f"[red]Invalid status '{status}'. Valid statuses: {valid}[/red]")
        raise typer.Exit(1)

    store = _get_store()
    snapshot = _load()
    old = snapshot.task(task_id)
    if old is None:
        console.print(f"[red]Task {task_id} not found.[/red]")
        raise typer.Exit(1)
    if old.status == new_status:
        console.print(f"{task_id} is already {new_status.value}.")
        return

    store.save(snapshot.evolve(tasks=set_task_status(snapshot.tasks, task_id, new_status)))
    console.print(f"[green]Set {task_id} from {old.status.value} to {new_status.value}.[/green]")


@app.command()
def report(
    project_id: str,
    actor_id: Annotated[str, typer.Option("--as", help="Engineer filing the report")],
    notes: Annotated[str, typer.Option(help="Progress notes")] = "",
    on_date: Annotated[Optional[str], typer.Option("--date", help="Report date (YYYY-MM-DD)")] = None,
    absent: Annotated[bool, typer.Option("--absent", help="Mark the engineer absent")] = False,
    photos: Annotated[Optional[list[str]], typer.Option("--photo", help="Photo reference")] = None,
) -> None:
    """Log a daily site report and attendance."""
    store = _get_store()
    snapshot = _load()
    project = _require_project(snapshot, project_id)
    engineer = _require_user(snapshot, actor_id)

    result = prepare_report(
        ReportDraft(
            project_id=project.id,
            engineer_id=engineer.id,
            date=_parse_date(on_date, "--date"),
            notes=notes,
            present=not absent,
            photos=photos or [],
        )
    )
    if isinstance(result, ValidationErrors):
        _print_errors(result)
        raise typer.Exit(1)

    store.save(snapshot.evolve(reports=append_report(snapshot.reports, result)))
    console.print(f"[green]Logged report for {project.name} on {result.date.isoformat()}[/green]")


@app.command()
def reports(
    project_id: Annotated[Optional[str], typer.Option("--project", "-p", help="Only this project")] = None,
) -> None:
    """List daily reports, newest first."""
    snapshot = _load()
    selected = list(snapshot.reports)
    if project_id:
        selected = snapshot.project_reports(project_id)
    if not selected:
        console.print("No reports found.")
        return

    table = Table(title="Daily Logs")
    table.add_column("Date")
    table.add_column("Project")
    table.add_column("Engineer")
    table.add_column("Present")
    table.add_column("Notes")
    table.add_column("Photos")

    for r in sorted(selected, key=lambda r: r.date, reverse=True):
        engineer = snapshot.user(r.engineer_id)
        table.add_row(
            r.date.isoformat(),
            r.project_id,
            engineer.name if engineer else r.engineer_id,
            "yes" if r.present else "no",
            r.notes or "-",
            str(len(r.photos)),
        )
    console.print(table)


@app.command()
def attendance(
    on_date: Annotated[Optional[str], typer.Option("--date", help="Day to check (YYYY-MM-DD)")] = None,
) -> None:
    """Show which engineers reported present on a day."""
    day = _parse_date(on_date, "--date")
    snapshot = _load()
    engineers = [u for u in snapshot.users if not u.is_owner]
    day_reports = [r for r in snapshot.reports if r.date == day]

    console.print(f"\n[bold underline]Attendance {day.isoformat()}[/bold underline]\n")
    for u in engineers:
        mine = [r for r in day_reports if r.engineer_id == u.id]
        if not mine:
            console.print(f"  [dim]{u.name}: no report[/dim]")
        elif any(r.present for r in mine):
            sites = ", ".join(sorted({r.project_id for r in mine if r.present}))
            console.print(f"  [green]{u.name}: present[/green] ({sites})")
        else:
            console.print(f"  [red]{u.name}: absent[/red]")
    console.print()


@app.command("validate")
def validate_graph(
    project_id: Annotated[Optional[str], typer.Option("--project", "-p", help="Only this project")] = None,
) -> None:
    """Audit task dependencies for self references, unknown tasks and cycles."""
    snapshot = _load()
    tasks = snapshot.project_tasks(project_id) if project_id else list(snapshot.tasks)
    errors = validate(tasks)
    if not errors:
        console.print(f"[green]Dependencies OK ({len(tasks)} task(s) checked).[/green]")
        return
    for e in errors:
        console.print(f"[red]{e.project_id}: {e.describe()}[/red]")
    raise typer.Exit(1)


@app.command()
def recompute(project_id: str) -> None:
    """Set a project's stored progress from its completed task share."""
    store = _get_store()
    snapshot = _load()
    project = _require_project(snapshot, project_id)
    pct = task_completion(snapshot.project_tasks(project.id))
    updated = tuple(p.with_progress(pct) if p.id == project.id else p for p in snapshot.projects)
    store.save(snapshot.evolve(projects=updated))
    console.print(f"[green]{project.name}: progress {project.progress}% -> {pct}%[/green]")


@app.command()
def analyze(project_id: str, today: TodayOption = None) -> None:
    """Ask the AI engine for a delay and risk narrative."""
    current = _parse_date(today, "--today")
    snapshot = _load()
    project = _require_project(snapshot, project_id)
    tasks = snapshot.project_tasks(project.id)
    statuses = resolve_statuses(tasks, current)

    narrative = LatestNarrative(NarrativeClient())
    with console.status("Analyzing..."):
        text = asyncio.run(
            narrative.request(project, tasks, snapshot.project_reports(project.id), statuses)
        )
    console.print(f"\n[bold underline]AI Progress Review: {project.name}[/bold underline]\n")
    console.print(text)
    console.print()
