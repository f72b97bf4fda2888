"""State Puller: estado remoto actual con la forma del estado deseado."""

from __future__ import annotations

import asyncio

import httpx

from adapters.pihole_api import SessionAccessor, domain_get, list_get
from core.domain.models import ApiErrorDetail, ApiResult
from core.domain.state import SyncState


async def pull(client: httpx.AsyncClient, session: SessionAccessor) -> ApiResult[SyncState]:
    """Lee listas y dominios en paralelo y los pliega en un `SyncState` nuevo.

    Si falla cualquiera de las dos lecturas, falla el pull entero y el mensaje
    incluye ambos errores (no solo el primero).
    """

    lists, domains = await asyncio.gather(list_get(client, session), domain_get(client, session))

    failures = [
        (name, result.error)
        for name, result in (("lists", lists), ("domains", domains))
        if result.error is not None
    ]
    if failures:
        return ApiResult.from_error(_join_failures(failures))

    return ApiResult.success(SyncState.from_entries(lists=lists.value, domains=domains.value))


def _join_failures(failures: list[tuple[str, ApiErrorDetail]]) -> ApiErrorDetail:
    if len(failures) == 1:
        return failures[0][1]
    # La clave de auth manda: el bucle la usa para detectar pérdida de sesión.
    keys = [error for _, error in failures if error.is_auth_failure] or [failures[0][1]]
    message = "; ".join(f"{name}: {error.describe()}" for name, error in failures)
    return ApiErrorDetail(key=keys[0].key, message=f"failed to fetch: {message}")
