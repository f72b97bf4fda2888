"""Converger: aplica el diff y decide si hace falta el rebuild.

Reglas:
- Orden estable: primero listas, luego dominios; dentro de cada bucket, el
  orden en que el diff presenta las entradas.
- Secuencial: una adición cada vez. Al primer fallo se aborta; lo ya aplicado
  se queda (el siguiente ciclo reintenta lo que falte).
- `changed` es True si al menos una adición tuvo éxito, y solo entonces se
  lanza el rebuild. Un fallo del rebuild se informa pero no deshace nada.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Awaitable, Callable, Iterator, TextIO

import httpx

from adapters.pihole_api import SessionAccessor, domain_add, list_add, rebuild
from core.domain.models import ApiErrorDetail, ApiResult
from core.domain.state import SyncState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntryFailure:
    """Adición que abortó la convergencia (ReconciliationAbort)."""

    operation: str
    identity: str
    error: ApiErrorDetail

    def describe(self) -> str:
        return f"{self.operation} {self.identity}: {self.error.describe()}"


@dataclass
class ConvergeReport:
    changed: bool = False
    applied: list[str] = field(default_factory=list)
    failure: EntryFailure | None = None
    rebuild: ApiResult[Any] | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def error(self) -> ApiErrorDetail | None:
        return self.failure.error if self.failure else None

    @property
    def rebuilt(self) -> bool:
        return self.rebuild is not None and self.rebuild.ok


@dataclass(frozen=True)
class _Addition:
    operation: str
    identity: str
    apply: Callable[[httpx.AsyncClient, SessionAccessor], Awaitable[ApiResult[Any]]]


def _planned_additions(delta: SyncState) -> Iterator[_Addition]:
    for entry in delta.list_entries():
        yield _Addition("add", entry.label(), partial(list_add, entry=entry))
    for entry in delta.domain_entries():
        yield _Addition("add", entry.label(), partial(domain_add, entry=entry))


async def converge(
    client: httpx.AsyncClient,
    session: SessionAccessor,
    delta: SyncState,
    *,
    sink: TextIO | None = None,
) -> ConvergeReport:
    report = ConvergeReport()

    for addition in _planned_additions(delta):
        result = await addition.apply(client, session)
        if result.error is not None:
            report.failure = EntryFailure(addition.operation, addition.identity, result.error)
            logger.error("Failed to %s %s: %s", addition.operation, addition.identity, result.error.describe())
            break
        report.applied.append(addition.identity)
        report.changed = True
        logger.info("Added %s", addition.identity)

    if not report.changed:
        logger.info("No remote changes; skipping rebuild")
        return report

    report.rebuild = await _run_rebuild(client, session, sink or sys.stdout)
    return report


async def _run_rebuild(client: httpx.AsyncClient, session: SessionAccessor, sink: TextIO) -> ApiResult[Any]:
    logger.info("Rebuilding the filtering database")
    started = await rebuild(client, session)
    if started.error is not None:
        logger.error("Rebuild failed: %s", started.error.describe())
        return started

    forwarded = await started.value.pipe_to(sink)
    if forwarded.error is not None:
        logger.error("Rebuild stream interrupted: %s", forwarded.error.describe())
    else:
        logger.info("Rebuild finished")
    return forwarded
