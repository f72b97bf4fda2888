"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en `diff`, `sync --once` y `doctor`.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.state import SyncState
from core.services.converger import ConvergeReport


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida (solo en modos interactivos)."""

    title = Text("pihole-sync", style="bold cyan")
    subtitle = Text("Estado declarativo • Diff • Convergencia", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_diff_table(delta: SyncState, *, title: str = "Missing on appliance") -> Table:
    """Tabla con las entradas que faltan en el appliance."""

    table = Table(title=title)
    table.add_column("Bucket", style="cyan", no_wrap=True)
    table.add_column("Type", style="white")
    table.add_column("Entry", style="magenta")
    table.add_column("Comment", style="dim")

    for entry in delta.list_entries():
        table.add_row(entry.kind.value, "list", entry.address, "")
    for entry in delta.domain_entries():
        table.add_row(entry.kind.value, f"domain/{entry.match_mode.value}", entry.domain, entry.comment or "")
    return table


def build_report_panel(report: ConvergeReport) -> Panel:
    """Panel con el resumen de una convergencia."""

    body = Text()
    body.append(f"Applied: {len(report.applied)}\n")
    for identity in report.applied:
        body.append(f"- {identity}\n", style="green")
    if report.failure:
        body.append(f"\nAborted: {report.failure.describe()}\n", style="red")
    if report.rebuild is None:
        body.append("\nRebuild: not needed", style="dim")
    elif report.rebuild.ok:
        body.append("\nRebuild: done", style="green")
    else:
        body.append(f"\nRebuild: failed ({report.rebuild.error.describe()})", style="red")

    border = "green" if report.ok else "red"
    return Panel(body, title=Text("Convergencia", style="bold"), border_style=border)
