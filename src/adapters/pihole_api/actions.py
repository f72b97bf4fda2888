"""Familia `action`: rebuild de la base de filtrado (gravity).

El rebuild puede tardar minutos y devuelve progreso en texto a medida que
avanza. El timeout fijo solo cubre hasta recibir los headers; el cuerpo se
consume en streaming sin límite de tiempo y sin bufferizarlo entero.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TextIO

import httpx

from adapters.pihole_api.base import (
    SessionAccessor,
    match_error_envelope,
    session_headers,
    transport_failure,
)
from core.domain.models import TRANSPORT_MALFORMED, TRANSPORT_TIMEOUT, ApiResult

REBUILD_PATH = "action/gravity"


@dataclass
class RebuildStream:
    """Cuerpo en streaming de un rebuild aceptado."""

    response: httpx.Response

    async def pipe_to(self, sink: TextIO) -> ApiResult[int]:
        """Reenvía el progreso al `sink` trozo a trozo; devuelve caracteres escritos."""

        written = 0
        try:
            async for chunk in self.response.aiter_text():
                sink.write(chunk)
                sink.flush()
                written += len(chunk)
        except httpx.HTTPError as exc:
            return transport_failure(exc, f"POST /{REBUILD_PATH} stream")
        finally:
            await self.response.aclose()
        return ApiResult.success(written)


async def rebuild(
    client: httpx.AsyncClient,
    session: SessionAccessor,
    *,
    header_timeout: float | None = None,
) -> ApiResult[RebuildStream]:
    what = f"POST /{REBUILD_PATH}"
    headers = session_headers(session, what)
    if headers.error is not None:
        return ApiResult.from_error(headers.error)

    base = client.timeout
    header_timeout = header_timeout if header_timeout is not None else base.read
    request = client.build_request(
        "POST",
        REBUILD_PATH,
        headers=headers.value,
        timeout=httpx.Timeout(connect=base.connect, read=None, write=base.write, pool=base.pool),
    )

    try:
        response = await asyncio.wait_for(client.send(request, stream=True), timeout=header_timeout)
    except asyncio.TimeoutError:
        return ApiResult.failure(TRANSPORT_TIMEOUT, f"{what} sent no headers within {header_timeout}s")
    except httpx.HTTPError as exc:
        return transport_failure(exc, what)

    if response.is_success:
        return ApiResult.success(RebuildStream(response))

    try:
        await response.aread()
        payload = response.json()
    except httpx.HTTPError as exc:
        return transport_failure(exc, what)
    except ValueError:
        payload = None
    finally:
        await response.aclose()

    error = match_error_envelope(payload)
    if error is not None:
        return ApiResult.from_error(error)
    return ApiResult.failure(TRANSPORT_MALFORMED, f"{what} answered HTTP {response.status_code} without error envelope")
