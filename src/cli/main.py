"""CLI principal (Typer).

Comandos:
- `sync`: bucle de reconciliación (o un ciclo con `--once`).
- `pull`: vuelca el estado actual del appliance al fichero (o stdout).
- `diff`: dry run; muestra qué falta en el appliance sin tocar nada.
- `doctor`: diagnósticos y configuración de usuario.
"""

from __future__ import annotations

import asyncio
import signal
import sys
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console

from adapters.http_client import build_async_client
from adapters.state_file import encode_state, load_desired_state, write_state
from cli import doctor
from cli.ui_components import build_diff_table, build_report_panel, print_banner
from core.config import AppSettings
from core.domain.errors import PiholeSyncError
from core.domain.models import ApiErrorDetail
from core.domain.state import SyncState
from core.logging_utils import setup_logging
from core.services.differ import diff
from core.services.puller import pull
from core.services.reconciler import Reconciler
from core.services.session import SessionManager

app = typer.Typer(
    no_args_is_help=True,
    help="Keep a Pi-hole's lists and domains in sync with a declarative JSON file.",
)
app.add_typer(doctor.app, name="doctor")

_console = Console()
_err_console = Console(stderr=True)


def _settings(config_file: Path | None) -> AppSettings:
    settings = AppSettings()
    if config_file is not None:
        settings = settings.model_copy(update={"config_file": config_file})
    return settings


def _fail(message: str) -> NoReturn:
    _err_console.print(f"[red]{message}[/red]")
    raise typer.Exit(code=1)


def _install_signal_handlers(reconciler: Reconciler) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, reconciler.request_stop)
        except (NotImplementedError, RuntimeError):
            # Windows: sin add_signal_handler; Ctrl-C llega como KeyboardInterrupt.
            pass


async def _sync(settings: AppSettings, once: bool) -> Reconciler:
    async with build_async_client(settings) as client:
        sessions = SessionManager(client, client_id=settings.client_id)
        reconciler = Reconciler(client=client, sessions=sessions, settings=settings)
        _install_signal_handlers(reconciler)
        await reconciler.run(once=once)
        return reconciler


async def _fetch_remote(settings: AppSettings) -> SyncState | ApiErrorDetail:
    async with build_async_client(settings) as client:
        async with SessionManager(client, client_id=settings.client_id) as sessions:
            acquired = await sessions.acquire(settings.password)
            if acquired.error is not None:
                return acquired.error
            pulled = await pull(client, sessions.current)
            return pulled.error if pulled.error is not None else pulled.value


@app.command()
def sync(
    once: bool = typer.Option(False, "--once", help="Run a single cycle and exit."),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Desired-state JSON file."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override PIHOLE_SYNC_LOG_LEVEL."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="No banner."),
) -> None:
    """Reconcile the appliance with the desired-state file."""

    settings = _settings(config_file)
    setup_logging(log_level or settings.log_level, log_file=settings.log_file)
    if not quiet:
        print_banner(_err_console)

    try:
        reconciler = asyncio.run(_sync(settings, once))
    except PiholeSyncError as exc:
        _fail(str(exc))

    outcome = reconciler.last_outcome
    if once and outcome is not None:
        if outcome.report is not None and outcome.report.changed:
            _err_console.print(build_report_panel(outcome.report))
        if not outcome.ok:
            raise typer.Exit(code=1)


@app.command(name="pull")
def pull_command(
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write here instead of the configured file. Use '-' for stdout.",
    ),
) -> None:
    """Fetch the appliance's lists/domains and store them as desired state."""

    settings = AppSettings()
    setup_logging(settings.log_level, log_file=settings.log_file)

    result = asyncio.run(_fetch_remote(settings))
    if isinstance(result, ApiErrorDetail):
        _fail(f"Pull failed: {result.describe()}")

    if output is not None and str(output) == "-":
        sys.stdout.write(encode_state(result))
        return

    target = write_state(output or settings.config_file, result)
    _err_console.print(f"[green]Saved {result.count()} entries to:[/green] {target}")


@app.command(name="diff")
def diff_command(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Desired-state JSON file."),
) -> None:
    """Show which desired entries are missing on the appliance (dry run)."""

    settings = _settings(config_file)
    setup_logging(settings.log_level, log_file=settings.log_file)

    try:
        desired = load_desired_state(settings.config_file)
    except PiholeSyncError as exc:
        _fail(str(exc))

    result = asyncio.run(_fetch_remote(settings))
    if isinstance(result, ApiErrorDetail):
        _fail(f"Pull failed: {result.describe()}")

    delta = diff(desired, result)
    if delta.is_empty():
        _console.print("[green]Appliance is in sync.[/green]")
        return
    _console.print(build_diff_table(delta))


def run() -> None:
    app()


if __name__ == "__main__":
    run()
