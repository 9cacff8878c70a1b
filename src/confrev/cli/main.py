"""CLI application using Typer for the conference review platform."""

from datetime import date
from pathlib import Path
from typing import List, NoReturn, Optional

import pandas as pd
import typer
from rich.console import Console
from rich.table import Table

from ..auth.users import context_for, register_user
from ..conferences.service import ConferenceDraft, ConferenceService
from ..config.settings import settings
from ..core.errors import ConfrevError
from ..core.models import Role
from ..lifecycle.engine import PaperLifecycleEngine
from ..papers.documents import DocumentStore
from ..storage import open_repository
from ..storage.base import Repository
from ..utils.logging import get_logger

app = typer.Typer(
    name="confrev",
    help="Conference paper submission and review platform",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)

DB_OPTION = typer.Option(None, "--db", help="SQLite database path (default: from settings)")


def _open(db: Optional[Path]) -> Repository:
    return open_repository(db or settings.database_path)


def _fail(exc: ConfrevError) -> NoReturn:
    console.print(f"[red]Error: {exc.message}[/red]")
    raise typer.Exit(1)


@app.command("init-db")
def init_db(db: Optional[Path] = DB_OPTION) -> None:
    """Create the database schema."""
    repo = _open(db)
    repo.close()
    console.print(f"[green]Database ready at {db or settings.database_path}[/green]")


@app.command("add-user")
def add_user(
    name: str = typer.Argument(..., help="Display name"),
    email: str = typer.Argument(..., help="Unique e-mail address"),
    role: Role = typer.Option(Role.AUTHOR, "--role", "-r", case_sensitive=False, help="User role"),
    db: Optional[Path] = DB_OPTION,
) -> None:
    """Register a user."""
    repo = _open(db)
    try:
        user = register_user(repo, name, email, role)
    except ConfrevError as exc:
        _fail(exc)
    finally:
        repo.close()
    console.print(f"[green]Created {user.role.value} {user.name}[/green] id={user.id}")


@app.command()
def users(
    role: Optional[Role] = typer.Option(None, "--role", "-r", case_sensitive=False, help="Filter by role"),
    db: Optional[Path] = DB_OPTION,
) -> None:
    """List registered users."""
    repo = _open(db)
    table = Table(title="Users")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Email")
    table.add_column("Role", style="magenta")
    for user in repo.list_users(role=role):
        table.add_row(user.id, user.name, user.email, user.role.value)
    repo.close()
    console.print(table)


@app.command("create-conference")
def create_conference(
    organizer_id: str = typer.Option(..., "--organizer", help="Organizer user id"),
    name: str = typer.Option(..., "--name"),
    location: str = typer.Option(..., "--location"),
    start_date: str = typer.Option(..., "--start-date", help="Start date (YYYY-MM-DD)"),
    end_date: str = typer.Option(..., "--end-date", help="End date (YYYY-MM-DD)"),
    description: Optional[str] = typer.Option(None, "--description"),
    db: Optional[Path] = DB_OPTION,
) -> None:
    """Create a conference owned by an organizer."""
    repo = _open(db)
    try:
        ctx = context_for(repo, organizer_id)
        draft = ConferenceDraft(
            name=name,
            location=location,
            description=description,
            start_date=date.fromisoformat(start_date),
            end_date=date.fromisoformat(end_date),
        )
        conference = ConferenceService(repo).create(ctx, draft)
    except ConfrevError as exc:
        _fail(exc)
    except ValueError as exc:
        console.print(f"[red]Error: invalid date: {exc}[/red]")
        raise typer.Exit(1)
    finally:
        repo.close()
    console.print(f"[green]Created conference {conference.name}[/green] id={conference.id}")


@app.command()
def conferences(db: Optional[Path] = DB_OPTION) -> None:
    """List conferences by start date."""
    repo = _open(db)
    table = Table(title="Conferences")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Location")
    table.add_column("Dates")
    table.add_column("Reviewers", justify="right")
    for conf in ConferenceService(repo).list_conferences():
        table.add_row(
            conf.id,
            conf.name,
            conf.location,
            f"{conf.start_date} → {conf.end_date}",
            str(len(conf.reviewer_ids)),
        )
    repo.close()
    console.print(table)


@app.command("set-reviewers")
def set_reviewers(
    conference_id: str = typer.Argument(..., help="Conference id"),
    reviewer_ids: List[str] = typer.Argument(..., help="Reviewer user ids, in pool order"),
    organizer_id: str = typer.Option(..., "--organizer", help="Acting organizer id"),
    db: Optional[Path] = DB_OPTION,
) -> None:
    """Replace a conference's reviewer pool."""
    repo = _open(db)
    try:
        ctx = context_for(repo, organizer_id)
        conference = ConferenceService(repo).assign_reviewers(ctx, conference_id, list(reviewer_ids))
    except ConfrevError as exc:
        _fail(exc)
    finally:
        repo.close()
    console.print(f"[green]Pool now has {len(conference.reviewer_ids)} reviewers[/green]")


@app.command()
def submit(
    conference_id: str = typer.Argument(..., help="Conference id"),
    document: Path = typer.Argument(..., exists=True, dir_okay=False, help="Paper file"),
    title: str = typer.Option(..., "--title", "-t"),
    author_id: str = typer.Option(..., "--author", help="Submitting author id"),
    db: Optional[Path] = DB_OPTION,
) -> None:
    """Submit a paper file to a conference."""
    repo = _open(db)
    try:
        with DocumentStore().stored(document.name, document.read_bytes()) as document_ref:
            paper = PaperLifecycleEngine(repo).submit_paper(conference_id, author_id, title, document_ref)
        reviews = repo.list_reviews(paper_id=paper.id)
    except ConfrevError as exc:
        _fail(exc)
    finally:
        repo.close()
    console.print(f"[green]Submitted paper[/green] id={paper.id} status={paper.status.value}")
    console.print(f"Assigned reviewers: {len(reviews)}")


@app.command()
def revise(
    paper_id: str = typer.Argument(..., help="Paper id"),
    document: Path = typer.Argument(..., exists=True, dir_okay=False, help="Revised paper file"),
    author_id: str = typer.Option(..., "--author", help="Paper author id"),
    db: Optional[Path] = DB_OPTION,
) -> None:
    """Upload a revised version of a paper."""
    repo = _open(db)
    try:
        with DocumentStore().stored(document.name, document.read_bytes()) as document_ref:
            paper = PaperLifecycleEngine(repo).upload_revision(paper_id, author_id, document_ref)
    except ConfrevError as exc:
        _fail(exc)
    finally:
        repo.close()
    console.print(f"[green]Paper now at version {paper.version}[/green] status={paper.status.value}")


@app.command()
def decide(
    review_id: str = typer.Argument(..., help="Review id"),
    decision: str = typer.Argument(..., help="ACCEPTED or REVISION_REQUESTED"),
    reviewer_id: str = typer.Option(..., "--reviewer", help="Assigned reviewer id"),
    feedback: Optional[str] = typer.Option(None, "--feedback", "-f"),
    db: Optional[Path] = DB_OPTION,
) -> None:
    """Record a review decision."""
    repo = _open(db)
    try:
        review = PaperLifecycleEngine(repo).record_review_decision(
            review_id, reviewer_id, decision.upper(), feedback
        )
        paper = repo.get_paper(review.paper_id)
    except ConfrevError as exc:
        _fail(exc)
    finally:
        repo.close()
    console.print(f"[green]Review recorded[/green] paper status={paper.status.value}")


def build_export_frame(repo: Repository, conference_id: Optional[str] = None) -> pd.DataFrame:
    """One row per review (or per paper without reviews) with paper context."""
    conference_ids = [conference_id] if conference_id else None
    rows = []
    for paper in repo.list_papers(conference_ids=conference_ids):
        base = {
            "paper_id": paper.id,
            "conference_id": paper.conference_id,
            "title": paper.title,
            "author_id": paper.author_id,
            "paper_status": paper.status.value,
            "version": paper.version,
        }
        reviews = repo.list_reviews(paper_id=paper.id)
        if not reviews:
            rows.append({**base, "review_id": None, "reviewer_id": None, "review_status": None, "feedback": None})
        for review in reviews:
            rows.append(
                {
                    **base,
                    "review_id": review.id,
                    "reviewer_id": review.reviewer_id,
                    "review_status": review.status.value,
                    "feedback": review.feedback,
                }
            )
    columns = [
        "paper_id", "conference_id", "title", "author_id", "paper_status", "version",
        "review_id", "reviewer_id", "review_status", "feedback",
    ]
    return pd.DataFrame(rows, columns=columns)


@app.command()
def export(
    output: Path = typer.Option(Path("reviews.csv"), "--output", "-o", help="CSV file to write"),
    conference_id: Optional[str] = typer.Option(None, "--conference", help="Limit to one conference"),
    db: Optional[Path] = DB_OPTION,
) -> None:
    """Export papers and their reviews to CSV."""
    repo = _open(db)
    df = build_export_frame(repo, conference_id)
    repo.close()
    output.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output, index=False)
    console.print(f"[green]Wrote {len(df)} rows to {output}[/green]")
    if not df.empty:
        summary = df.drop_duplicates("paper_id")["paper_status"].value_counts()
        table = Table(title="Papers by status")
        table.add_column("Status")
        table.add_column("Count", justify="right")
        for status, count in summary.items():
            table.add_row(str(status), str(count))
        console.print(table)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Hostname to bind the web server to."),
    port: int = typer.Option(5001, "--port", help="Port for the web server."),
    reload: bool = typer.Option(False, "--reload/--no-reload", help="Enable auto-reload (development only)."),
) -> None:
    """Start the HTTP API."""
    from ..web.app import start_server

    console.print(f"[bold blue]Starting web server[/bold blue] at http://{host}:{port}")
    start_server(host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
