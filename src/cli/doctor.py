"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client
from adapters.pihole_api import probe
from adapters.state_file import load_desired_state
from core.config import AppSettings, write_user_env_vars
from core.domain.errors import ConfigError
from core.services.session import SessionManager

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_appliance(settings: AppSettings) -> tuple[tuple[bool, str], tuple[bool, str]]:
    """Reachability and authentication, in that order."""

    async with build_async_client(settings) as client:
        reachable = await probe(client)
        if not reachable.ok:
            return (False, reachable.error.describe()), (False, "skipped")

        async with SessionManager(client, client_id=settings.client_id) as sessions:
            acquired = await sessions.acquire(settings.password)
        if not acquired.ok:
            return (True, "OK"), (False, acquired.error.describe())
        detail = "no password configured" if acquired.value.is_tokenless else "session acquired and released"
        return (True, "OK"), (True, detail)


def _check_desired_state(settings: AppSettings) -> tuple[bool, str]:
    try:
        state = load_desired_state(settings.config_file)
    except ConfigError as exc:
        return False, exc.reason
    return True, f"{state.count()} entries"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="pihole-sync Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    table.add_row("API URL", "OK", settings.api_url)
    if settings.password:
        table.add_row("Password", "OK", "set")
    else:
        table.add_row("Password", "OPTIONAL", "Empty -> only works if the appliance has no password")

    ok_file, detail_file = _check_desired_state(settings)
    table.add_row("Desired state", "OK" if ok_file else "FAIL", f"{settings.config_file}: {detail_file}")

    # Connectivity (best-effort)
    (ok_http, detail_http), (ok_auth, detail_auth) = asyncio.run(_check_appliance(settings))
    table.add_row("Appliance reachable", "OK" if ok_http else "FAIL", detail_http)
    table.add_row("Authentication", "OK" if ok_auth else "FAIL", detail_auth)

    _console.print(table)

    if not ok_file:
        _console.print(
            "\n[yellow]Note:[/yellow] `pihole-sync pull` can bootstrap the desired-state file from the appliance."
        )
    if not (ok_file and ok_http and ok_auth):
        raise typer.Exit(code=1)


@app.command(name="setup")
def setup() -> None:
    """Interactive setup (stores config in the user config .env)."""

    current = AppSettings()

    api_url = typer.prompt("Appliance API URL", default=current.api_url, show_default=True).strip()
    password = typer.prompt("Appliance password (empty if none)", default="", hide_input=True, show_default=False)
    config_file = typer.prompt(
        "Desired-state file",
        default=str(current.config_file),
        show_default=True,
    ).strip()

    if not api_url or not config_file:
        raise typer.BadParameter("API URL and desired-state file are required")

    env_path = write_user_env_vars(
        {
            "PIHOLE_SYNC_API_URL": api_url,
            "PIHOLE_SYNC_PASSWORD": password,
            "PIHOLE_SYNC_CONFIG_FILE": config_file,
        }
    )

    _console.print(f"[green]Saved config to:[/green] {env_path}")
