"""Envío y clasificación comunes a todas las familias de recursos.

Patrón de cada operación:
1) validar la forma del input,
2) adjuntar la sesión (si la llamada es autenticada),
3) emitir la llamada con el timeout fijo del cliente,
4) clasificar la respuesta en `ApiResult`.

Clasificación:
- Fallo de red / timeout / payload ilegible -> claves `transport-*` (nunca las
  produce el appliance), para distinguir "no llegamos" de "nos rechazó".
- Envelope `{error: {...}}` en cualquier endpoint -> error del appliance.
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from adapters.pihole_api.schemas import ErrorEnvelope
from core.domain.models import (
    NOT_AUTHENTICATED,
    TRANSPORT_ERROR,
    TRANSPORT_MALFORMED,
    TRANSPORT_TIMEOUT,
    ApiErrorDetail,
    ApiResult,
    Session,
)

SESSION_HEADER = "sid"

SessionAccessor = Callable[[], Session | None]
M = TypeVar("M", bound=BaseModel)


def session_headers(session: SessionAccessor | None, what: str) -> ApiResult[dict[str, str]]:
    """Headers de sesión para una llamada; `session=None` = no autenticada."""

    if session is None:
        return ApiResult.success({})
    current = session()
    if current is None:
        return ApiResult.failure(NOT_AUTHENTICATED, f"{what} requires an authenticated session")
    if current.sid:
        return ApiResult.success({SESSION_HEADER: current.sid})
    return ApiResult.success({})


def transport_failure(exc: Exception, what: str) -> ApiResult[Any]:
    if isinstance(exc, httpx.TimeoutException):
        return ApiResult.failure(TRANSPORT_TIMEOUT, f"{what} timed out: {exc!r}")
    return ApiResult.failure(TRANSPORT_ERROR, f"{what} failed: {exc!r}")


async def send(
    client: httpx.AsyncClient,
    method: str,
    path: str,
    *,
    session: SessionAccessor | None,
    params: dict[str, str] | None = None,
    body: dict[str, Any] | None = None,
) -> ApiResult[httpx.Response]:
    what = f"{method} /{path}"
    headers = session_headers(session, what)
    if headers.error is not None:
        return ApiResult.from_error(headers.error)

    try:
        response = await client.request(
            method,
            path,
            params=params,
            json=body,
            headers=headers.value,
        )
    except httpx.HTTPError as exc:
        return transport_failure(exc, what)
    return ApiResult.success(response)


def match_error_envelope(payload: Any) -> ApiErrorDetail | None:
    if not isinstance(payload, dict) or "error" not in payload:
        return None
    try:
        return ErrorEnvelope.model_validate(payload).error
    except ValidationError:
        return None


def _describe(response: httpx.Response) -> str:
    return f"{response.request.method} {response.request.url.path} (HTTP {response.status_code})"


def parse_payload(response: httpx.Response, schema: type[M]) -> ApiResult[M]:
    try:
        payload = response.json()
    except ValueError:
        return ApiResult.failure(TRANSPORT_MALFORMED, f"{_describe(response)} returned a non-JSON body")

    error = match_error_envelope(payload)
    if error is not None:
        return ApiResult.from_error(error)

    try:
        return ApiResult.success(schema.model_validate(payload))
    except ValidationError as exc:
        return ApiResult.failure(
            TRANSPORT_MALFORMED,
            f"{_describe(response)} returned an unexpected payload "
            f"({exc.error_count()} validation error(s))",
        )


def parse_empty(response: httpx.Response) -> ApiResult[None]:
    """Para endpoints sin cuerpo útil (DELETE): 2xx basta."""

    if response.is_success:
        return ApiResult.success(None)
    try:
        payload = response.json()
    except ValueError:
        payload = None
    error = match_error_envelope(payload)
    if error is not None:
        return ApiResult.from_error(error)
    return ApiResult.failure(TRANSPORT_MALFORMED, f"{_describe(response)} without error envelope")


async def call(
    client: httpx.AsyncClient,
    method: str,
    path: str,
    *,
    session: SessionAccessor | None,
    schema: type[M],
    params: dict[str, str] | None = None,
    body: dict[str, Any] | None = None,
) -> ApiResult[M]:
    sent = await send(client, method, path, session=session, params=params, body=body)
    if sent.error is not None:
        return ApiResult.from_error(sent.error)
    return parse_payload(sent.value, schema)


async def call_empty(
    client: httpx.AsyncClient,
    method: str,
    path: str,
    *,
    session: SessionAccessor | None,
) -> ApiResult[None]:
    sent = await send(client, method, path, session=session)
    if sent.error is not None:
        return ApiResult.from_error(sent.error)
    return parse_empty(sent.value)
