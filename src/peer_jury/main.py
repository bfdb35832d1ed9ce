"""
Peer Jury CLI Application.

Provides a command-line shell over the peer grading service. The shell
only formats results; every rule lives in the service.
"""

import logging
from typing import Annotated, Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from peer_jury.config import get_settings
from peer_jury.errors import PeerJuryError
from peer_jury.inputs import parse_due_at
from peer_jury.models import Role, User
from peer_jury.service import PeerGradingService
from peer_jury.storage import StorageError
from peer_jury.views import JurorAssignment, ProjectOverview

# Create Typer app
app = typer.Typer(
    name="peer-jury",
    help="Anonymous peer-jury grading for team deliverables",
    add_completion=False,
)

console = Console()


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log at DEBUG level"),
    ] = False,
) -> None:
    """Configure logging before any command runs."""
    level = "DEBUG" if verbose else get_settings().log_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _service() -> PeerGradingService:
    return PeerGradingService.from_settings(get_settings())


def _require_user(service: PeerGradingService) -> User:
    user = service.current_user()
    if user is None:
        console.print("[red]Error:[/red] Not logged in. Use 'register' or 'login' first.")
        raise typer.Exit(1)
    return user


def _fail(error: Exception) -> None:
    if isinstance(error, PeerJuryError):
        label = error.kind.replace("_", " ").title()
        console.print(f"[red]{label}:[/red] {error}")
    else:
        console.print(f"[red]Storage Error:[/red] {error}")
    raise typer.Exit(1)


@app.command()
def register(
    username: Annotated[str, typer.Argument(help="Username (case-insensitive)")],
    role: Annotated[Role, typer.Option("--role", "-r", help="Account role")] = Role.STUDENT,
) -> None:
    """Register a new user and log in as them."""
    try:
        user = _service().register(username, role)
        console.print(f"[green]Registered and logged in:[/green] {user.username} ({user.role.value})")
    except (PeerJuryError, StorageError) as e:
        _fail(e)


@app.command()
def login(username: Annotated[str, typer.Argument(help="Existing username")]) -> None:
    """Log in as an existing user."""
    try:
        user = _service().login(username)
        console.print(f"[green]Logged in:[/green] {user.username} ({user.role.value})")
    except (PeerJuryError, StorageError) as e:
        _fail(e)


@app.command()
def logout() -> None:
    """End the current session."""
    try:
        _service().logout()
        console.print("Logged out")
    except StorageError as e:
        _fail(e)


@app.command()
def whoami() -> None:
    """Show the logged-in user."""
    try:
        user = _service().current_user()
    except StorageError as e:
        _fail(e)
        return
    if user is None:
        console.print("Not logged in")
    else:
        console.print(f"{user.username} ({user.role.value})")


@app.command("create-project")
def create_project(
    title: Annotated[str, typer.Argument(help="Project title")],
    team: Annotated[str, typer.Option("--team", "-t", help="Comma-separated team usernames")],
) -> None:
    """Create a project; you must be part of the team."""
    try:
        service = _service()
        project = service.create_project(_require_user(service), title, team)
        console.print(
            Panel(
                f"[bold]{project.title}[/bold]\nTeam: {', '.join(project.team)}\nId: {project.id}",
                title="Project created",
            )
        )
    except (PeerJuryError, StorageError) as e:
        _fail(e)


@app.command("create-deliverable")
def create_deliverable(
    project_id: Annotated[UUID, typer.Argument(help="Project id")],
    title: Annotated[str, typer.Argument(help="Deliverable title")],
    due: Annotated[str, typer.Option("--due", "-d", help="Due instant, ISO 8601 (local time if no offset)")],
    jury_size: Annotated[
        Optional[int],
        typer.Option("--jury-size", "-j", help="Requested jury size (>= 3)"),
    ] = None,
    edit_window: Annotated[
        Optional[int],
        typer.Option("--edit-window", "-w", help="Edit window in minutes (>= 1)"),
    ] = None,
    link: Annotated[str, typer.Option("--link", "-l", help="Submission link")] = "",
) -> None:
    """Publish a deliverable for one of your projects."""
    settings = get_settings()
    try:
        service = _service()
        deliverable = service.create_deliverable(
            _require_user(service),
            project_id,
            title,
            parse_due_at(due),
            jury_size if jury_size is not None else settings.default_jury_size,
            edit_window if edit_window is not None else settings.default_edit_window_minutes,
            link,
        )
        console.print(
            Panel(
                f"[bold]{deliverable.title}[/bold]\n"
                f"Due: {deliverable.due_at.astimezone():%Y-%m-%d %H:%M}\n"
                f"Jury size: {deliverable.jury_size}\n"
                f"Edit window: {deliverable.edit_window_minutes} min\n"
                f"Id: {deliverable.id}",
                title="Deliverable created",
            )
        )
    except (PeerJuryError, StorageError) as e:
        _fail(e)


@app.command("set-link")
def set_link(
    deliverable_id: Annotated[UUID, typer.Argument(help="Deliverable id")],
    link: Annotated[str, typer.Argument(help="Video or deployed link")],
) -> None:
    """Update the submission link of your team's deliverable."""
    try:
        service = _service()
        service.set_link(_require_user(service), deliverable_id, link)
        console.print("[green]Link saved[/green]")
    except (PeerJuryError, StorageError) as e:
        _fail(e)


@app.command()
def grade(
    deliverable_id: Annotated[UUID, typer.Argument(help="Deliverable id")],
    value: Annotated[str, typer.Argument(help="Grade between 1 and 10, at most 2 decimals")],
) -> None:
    """Submit or update your grade as a juror."""
    try:
        service = _service()
        assignment = service.submit_grade(_require_user(service), deliverable_id, value)
        console.print(
            f"[green]Grade saved:[/green] {assignment.my_grade} for "
            f"'{assignment.deliverable_title}' (editable until "
            f"{assignment.edit_deadline.astimezone():%Y-%m-%d %H:%M})"
        )
    except (PeerJuryError, StorageError) as e:
        _fail(e)


@app.command()
def tasks() -> None:
    """List the deliverables you sit on the jury of."""
    try:
        service = _service()
        assignments = service.juror_assignments(_require_user(service))
    except (PeerJuryError, StorageError) as e:
        _fail(e)
        return

    if not assignments:
        console.print("No deliverables assigned to you as jury.")
        return
    _display_assignments(assignments)


@app.command()
def projects() -> None:
    """Show the projects you own, with anonymous grading results."""
    try:
        service = _service()
        overviews = service.owned_projects(_require_user(service))
    except (PeerJuryError, StorageError) as e:
        _fail(e)
        return

    if not overviews:
        console.print("You are not PM in any project yet.")
        return
    _display_projects(overviews)


@app.command()
def overview() -> None:
    """Supervisor view of every project, with anonymous results."""
    try:
        service = _service()
        overviews = service.supervisor_overview(_require_user(service))
    except (PeerJuryError, StorageError) as e:
        _fail(e)
        return

    if not overviews:
        console.print("No projects yet.")
        return
    _display_projects(overviews)


@app.command()
def refresh() -> None:
    """Draw juries for every deliverable that has become due."""
    try:
        assigned = _service().refresh_juries()
    except StorageError as e:
        _fail(e)
        return
    console.print(f"Juries assigned: {assigned}")


def _display_projects(overviews: list[ProjectOverview]) -> None:
    """Display project overviews. Juror identities are never part of them."""
    for project in overviews:
        table = Table(title=f"{project.title}  (team: {', '.join(project.team)})")
        table.add_column("Deliverable", style="cyan")
        table.add_column("Due")
        table.add_column("Grades", justify="right")
        table.add_column("Values (anonymous)")
        table.add_column("Final", justify="right")
        table.add_column("Link")
        table.add_column("Id", style="dim", no_wrap=True)

        for d in project.deliverables:
            values = ", ".join(str(v) for v in d.grade_values) or "none"
            final = "need at least 3 grades" if d.final_score is None else str(d.final_score)
            table.add_row(
                d.title,
                f"{d.due_at.astimezone():%Y-%m-%d %H:%M}",
                f"{d.grades_received}/{d.jurors_assigned}",
                values,
                final,
                d.link or "no link",
                str(d.deliverable_id),
            )

        if not project.deliverables:
            table.add_row("No deliverables yet.", "", "", "", "", "", "")
        console.print(table)


def _display_assignments(assignments: list[JurorAssignment]) -> None:
    table = Table(title="Jury tasks")
    table.add_column("Project", style="cyan")
    table.add_column("Deliverable")
    table.add_column("Link")
    table.add_column("Your grade", justify="right")
    table.add_column("Status")
    table.add_column("Id", style="dim")

    for a in assignments:
        status = "Editing allowed" if a.can_edit else "Editing closed"
        table.add_row(
            a.project_title,
            a.deliverable_title,
            a.link or "no link yet",
            "-" if a.my_grade is None else str(a.my_grade),
            status,
            str(a.deliverable_id),
        )

    console.print(table)


if __name__ == "__main__":
    app()
