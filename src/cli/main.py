"""crm-sync command line.

The CLI is a thin consumer of the Core: it opens one session against the
gateway configured in `AppSettings`, runs a single workflow and renders the
result (or the failure kind) with Rich.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler

from adapters.http_client import build_async_client
from adapters.json_exporter import export_records_json
from adapters.static_auth import StaticAuthProvider
from adapters.rest_store import HttpBlobStore, HttpDocumentStore
from cli import doctor
from cli.ui_components import (
    build_attachment_panel,
    build_candidates_table,
    build_error_panel,
    build_leads_table,
    build_skills_table,
)
from core.config import AppSettings
from core.domain.errors import CrmError
from core.services.attachments import UploadFile
from core.services.session import CrmSession, open_session

T = TypeVar("T")

app = typer.Typer(no_args_is_help=True, help="Client for the CRM document and blob gateway.")
leads_app = typer.Typer(no_args_is_help=True, help="Sales leads.")
candidates_app = typer.Typer(no_args_is_help=True, help="Candidates and their opportunities.")
attachments_app = typer.Typer(no_args_is_help=True, help="File attachments.")
skills_app = typer.Typer(no_args_is_help=True, help="Shared skill vocabulary.")

app.add_typer(leads_app, name="leads")
app.add_typer(candidates_app, name="candidates")
app.add_typer(attachments_app, name="attachments")
app.add_typer(skills_app, name="skills")
app.add_typer(doctor.app, name="doctor")

_console = Console()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=False)],
        force=True,
    )


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level."),
) -> None:
    settings = AppSettings()
    configure_logging("DEBUG" if verbose else settings.log_level)


@asynccontextmanager
async def open_gateway_session(settings: AppSettings) -> AsyncIterator[CrmSession]:
    documents = HttpDocumentStore(build_async_client(settings))
    blobs = HttpBlobStore(build_async_client(settings))
    try:
        yield open_session(
            documents=documents,
            blobs=blobs,
            auth=StaticAuthProvider(settings.user_id),
            current_user_ttl_seconds=settings.current_user_ttl_seconds,
        )
    finally:
        await documents.aclose()
        await blobs.aclose()


def _run(work: Callable[[CrmSession], Awaitable[T]]) -> T:
    settings = AppSettings()

    async def _main() -> T:
        async with open_gateway_session(settings) as session:
            return await work(session)

    try:
        return asyncio.run(_main())
    except CrmError as exc:
        _console.print(build_error_panel(exc))
        raise typer.Exit(code=1) from exc


@leads_app.command("list")
def list_leads() -> None:
    """List leads, newest first."""

    leads = _run(lambda s: s.leads.fetch())
    _console.print(build_leads_table(leads))


@candidates_app.command("list")
def list_candidates(
    opportunity: str | None = typer.Option(None, "--opportunity", "-o", help="Only this opportunity."),
) -> None:
    """List candidates, optionally scoped to one opportunity."""

    if opportunity:
        candidates = _run(lambda s: s.association.candidates_for(opportunity))
        title = f"Candidates for {opportunity}"
    else:
        candidates = _run(lambda s: s.candidates.fetch())
        title = "Candidates"
    _console.print(build_candidates_table(candidates, title=title))


@candidates_app.command("available")
def available_candidates() -> None:
    """Candidates not attached to any opportunity."""

    candidates = _run(lambda s: s.association.available_candidates())
    _console.print(build_candidates_table(candidates, title="Available candidates"))


@candidates_app.command("attach")
def attach_candidate(candidate_id: str, opportunity_id: str) -> None:
    """Attach an unattached candidate to an opportunity."""

    _run(lambda s: s.association.attach_existing(candidate_id, opportunity_id))
    _console.print(f"[green]Attached[/green] {candidate_id} -> {opportunity_id}")


@candidates_app.command("detach")
def detach_candidate(candidate_id: str) -> None:
    """Clear a candidate's opportunity."""

    _run(lambda s: s.association.detach(candidate_id))
    _console.print(f"[green]Detached[/green] {candidate_id}")


@attachments_app.command("upload")
def upload_attachment(
    owner_type: str = typer.Argument(..., help="leads | opportunities | candidates"),
    owner_id: str = typer.Argument(...),
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
) -> None:
    """Upload a file and attach it to its owner."""

    uploaded_by = AppSettings().user_id
    if not uploaded_by:
        raise typer.BadParameter("Set CRM_SYNC_USER_ID to record who uploaded the file")
    upload = UploadFile.from_path(file)
    attachment = _run(lambda s: s.attachments.upload(upload, owner_type, owner_id, uploaded_by))
    _console.print(build_attachment_panel(attachment))


@skills_app.command("list")
def list_skills() -> None:
    skills = _run(lambda s: s.skills.fetch())
    _console.print(build_skills_table(skills))


@skills_app.command("add")
def add_skill(name: str) -> None:
    """Add a skill to the vocabulary (admins only; others are skipped)."""

    async def _add(session: CrmSession):
        return await session.vocabulary.ensure_tag(name, await session.directory.current_user())

    skill = _run(_add)
    if skill is None:
        _console.print(f"[yellow]Vocabulary unchanged[/yellow] ({name!r} exists or caller is not an admin)")
    else:
        _console.print(f"[green]Added[/green] {skill.name} ({skill.id})")


@app.command("export")
def export_collection(collection: str, output: Path) -> None:
    """Export one collection to JSON."""

    async def _fetch(session: CrmSession):
        try:
            cache = session.collection(collection)
        except KeyError as exc:
            raise typer.BadParameter(str(exc.args[0])) from exc
        return await cache.fetch()

    records = _run(_fetch)
    path = export_records_json(records=records, output_path=output)
    _console.print(f"[green]Exported[/green] {len(records)} record(s) to {path}")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
