"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client
from adapters.rest_store import HttpDocumentStore
from core.config import AppSettings, save_user_settings
from core.domain.errors import CrmError

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_gateway(settings: AppSettings) -> tuple[bool, str]:
    store = HttpDocumentStore(build_async_client(settings))
    try:
        records = await store.list("skills")
        return True, f"{len(records)} skill(s) readable"
    except CrmError as exc:
        return False, f"{exc.kind.value}: {exc.message}"
    finally:
        await store.aclose()


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="crm-sync Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    table.add_row("Gateway URL", "OK", settings.remote_base_url)
    if settings.remote_api_token:
        table.add_row("API token", "OK", "Bearer token configured")
    else:
        table.add_row("API token", "OPTIONAL", "No token set -> anonymous requests")
    if settings.user_id:
        table.add_row("User id", "OK", settings.user_id)
    else:
        table.add_row("User id", "MISSING", "Uploads and vocabulary changes need CRM_SYNC_USER_ID")

    ok, detail = asyncio.run(_check_gateway(settings))
    table.add_row("Gateway connectivity", "OK" if ok else "FAIL", detail)

    _console.print(table)


@app.command(name="setup")
def setup() -> None:
    """Interactive setup (stores config in the user config .env)."""

    base_url = typer.prompt("Gateway base URL", default=AppSettings().remote_base_url).strip()
    user_id = typer.prompt("Your user id").strip()
    token = typer.prompt("API token (empty for none)", default="", hide_input=True).strip()

    if not base_url or not user_id:
        raise typer.BadParameter("base URL and user id are required")

    env_path = save_user_settings(
        {
            "remote_base_url": base_url,
            "user_id": user_id,
            "remote_api_token": token or None,
        }
    )
    _console.print(f"[green]Saved config to:[/green] {env_path}")
