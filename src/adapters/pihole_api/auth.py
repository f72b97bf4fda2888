"""Familia `auth`: login/logout, sondeo de salud y sesiones huérfanas."""

from __future__ import annotations

import httpx

from adapters.pihole_api.base import (
    SessionAccessor,
    call,
    call_empty,
    send,
)
from adapters.pihole_api.schemas import AuthResponse, SessionsResponse
from core.domain.models import (
    INVALID_SESSION,
    TRANSPORT_MALFORMED,
    ApiResult,
    Session,
    SessionInfo,
)


async def auth_login(client: httpx.AsyncClient, password: str) -> ApiResult[Session]:
    """`POST /auth`. Una sola llamada; sin sesión previa.

    `valid: false` sin envelope de error se traduce a `invalid-session` con el
    mensaje del appliance. Sin contraseña configurada el appliance responde
    `valid: true, sid: null`: es una sesión válida sin token.
    """

    result = await call(
        client,
        "POST",
        "auth",
        session=None,
        schema=AuthResponse,
        body={"password": password},
    )
    if result.error is not None:
        return ApiResult.from_error(result.error)

    body = result.value.session
    if not body.valid:
        return ApiResult.failure(INVALID_SESSION, body.message or "session rejected")
    return ApiResult.success(Session(sid=body.sid))


async def auth_logout(client: httpx.AsyncClient, session: SessionAccessor) -> ApiResult[None]:
    return await call_empty(client, "DELETE", "auth", session=session)


async def sessions_list(client: httpx.AsyncClient, session: SessionAccessor) -> ApiResult[list[SessionInfo]]:
    result = await call(client, "GET", "auth/sessions", session=session, schema=SessionsResponse)
    return result.map(lambda body: body.sessions)


async def sessions_delete(client: httpx.AsyncClient, session: SessionAccessor, session_id: int) -> ApiResult[None]:
    return await call_empty(client, "DELETE", f"auth/session/{session_id}", session=session)


async def probe(client: httpx.AsyncClient) -> ApiResult[None]:
    """Sondeo de alcanzabilidad: `GET /auth` sin sesión.

    Cualquier respuesta JSON (incluso un envelope de error o un 401) cuenta
    como "el appliance está arriba".
    """

    sent = await send(client, "GET", "auth", session=None)
    if sent.error is not None:
        return ApiResult.from_error(sent.error)
    response = sent.value
    try:
        payload = response.json()
    except ValueError:
        return ApiResult.failure(
            TRANSPORT_MALFORMED,
            f"GET /auth answered HTTP {response.status_code} with a non-JSON body",
        )
    if not isinstance(payload, dict):
        return ApiResult.failure(TRANSPORT_MALFORMED, "GET /auth answered with an unrecognised payload")
    return ApiResult.success(None)
