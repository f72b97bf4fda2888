"""Familia `domains`: dominios exactos/regex (`/domains/{type}/{kind}`)."""

from __future__ import annotations

from typing import Any

import httpx

from adapters.pihole_api.base import SessionAccessor, call
from adapters.pihole_api.schemas import DomainsResponse
from core.domain.models import INVALID_INPUT, ApiResult, DomainEntry


async def domain_get(client: httpx.AsyncClient, session: SessionAccessor) -> ApiResult[list[DomainEntry]]:
    result = await call(client, "GET", "domains", session=session, schema=DomainsResponse)
    return result.map(DomainsResponse.entries)


async def domain_add(
    client: httpx.AsyncClient,
    session: SessionAccessor,
    entry: DomainEntry,
) -> ApiResult[list[DomainEntry]]:
    if not entry.domain.strip():
        return ApiResult.failure(INVALID_INPUT, "domain must not be blank")

    body: dict[str, Any] = {"domain": entry.domain}
    if entry.comment is not None:
        body["comment"] = entry.comment

    path = f"domains/{entry.kind.domain_token}/{entry.match_mode.value}"
    result = await call(client, "POST", path, session=session, schema=DomainsResponse, body=body)
    if result.ok:
        rejected = result.value.rejection()
        if rejected is not None:
            return ApiResult.from_error(rejected)
    return result.map(DomainsResponse.entries)
