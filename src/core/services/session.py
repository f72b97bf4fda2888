"""Gestor de sesión: único dueño del token del appliance.

Reglas:
- Solo este objeto escribe `_session`; el resto recibe `current` como accessor.
- `acquire` hace exactamente una llamada de autenticación; no es seguro
  llamarlo en paralelo (el bucle lo serializa).
- `release` es idempotente y se ejecuta en todas las salidas (usar como
  `async with`).
"""

from __future__ import annotations

import logging
from types import TracebackType

import httpx

from adapters.pihole_api import auth_login, auth_logout, sessions_delete, sessions_list
from core.domain.models import ApiResult, Session

logger = logging.getLogger(__name__)


class SessionManager:
    def __init__(self, client: httpx.AsyncClient, *, client_id: str) -> None:
        self._client = client
        self._client_id = client_id
        self._session: Session | None = None

    @property
    def authenticated(self) -> bool:
        return self._session is not None

    def current(self) -> Session | None:
        """Sesión viva o None (no autenticado)."""

        return self._session

    async def acquire(self, password: str) -> ApiResult[Session]:
        result = await auth_login(self._client, password)
        if result.ok:
            self._session = result.value
            if self._session.is_tokenless:
                logger.info("Appliance has no password configured; using a tokenless session")
            else:
                logger.info("Authenticated against the appliance")
        else:
            self._session = None
            logger.warning("Authentication failed: %s", result.error.describe())
        return result

    def invalidate(self, reason: str) -> None:
        """El appliance dejó de aceptar la sesión: volver a no autenticado."""

        if self._session is not None:
            logger.warning("Session lost (%s); re-authentication required", reason)
        self._session = None

    async def release(self) -> ApiResult[None]:
        if self._session is None:
            return ApiResult.success(None)
        if self._session.is_tokenless:
            self._session = None
            return ApiResult.success(None)

        result = await auth_logout(self._client, self.current)
        if result.ok or result.error.is_auth_failure:
            # Si ya estaba caducada en el appliance, no queda nada que cerrar.
            self._session = None
            logger.info("Session released")
        else:
            logger.warning("Logout failed: %s", result.error.describe())
        return result

    async def prune_stale(self) -> int:
        """Borra sesiones huérfanas de ejecuciones anteriores de este cliente.

        Una sesión es huérfana si no es la actual y su `user_agent` coincide con
        nuestro identificador de cliente. Los fallos se registran, no se elevan.
        """

        listed = await sessions_list(self._client, self.current)
        if not listed.ok:
            logger.warning("Could not list sessions: %s", listed.error.describe())
            return 0

        removed = 0
        for info in listed.value:
            if info.current_session or info.user_agent != self._client_id:
                continue
            deleted = await sessions_delete(self._client, self.current, info.id)
            if deleted.ok:
                removed += 1
            else:
                logger.warning("Could not delete stale session %s: %s", info.id, deleted.error.describe())
        if removed:
            logger.info("Removed %d stale session(s)", removed)
        return removed

    async def __aenter__(self) -> "SessionManager":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.release()
