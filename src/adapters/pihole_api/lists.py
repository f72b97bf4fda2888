"""Familia `lists`: adlists de bloqueo/permiso (`/lists`)."""

from __future__ import annotations

from typing import Any

import httpx

from adapters.pihole_api.base import SessionAccessor, call
from adapters.pihole_api.schemas import ListsResponse
from core.domain.models import INVALID_INPUT, ApiResult, ListEntry


async def list_get(client: httpx.AsyncClient, session: SessionAccessor) -> ApiResult[list[ListEntry]]:
    result = await call(client, "GET", "lists", session=session, schema=ListsResponse)
    return result.map(ListsResponse.entries)


async def list_add(
    client: httpx.AsyncClient,
    session: SessionAccessor,
    entry: ListEntry,
) -> ApiResult[list[ListEntry]]:
    """Añade una lista; si ya existe el appliance lo trata como no-op.

    El bucket va en la query (`?type=`), no en el cuerpo.
    """

    if not entry.address.strip():
        return ApiResult.failure(INVALID_INPUT, "list address must not be blank")

    body: dict[str, Any] = {"address": entry.address}
    if entry.comment is not None:
        body["comment"] = entry.comment

    result = await call(
        client,
        "POST",
        "lists",
        session=session,
        schema=ListsResponse,
        params={"type": entry.kind.value},
        body=body,
    )
    if result.ok:
        rejected = result.value.rejection()
        if rejected is not None:
            return ApiResult.from_error(rejected)
    return result.map(ListsResponse.entries)
