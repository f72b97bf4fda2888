"""Bucle de reconciliación.

Estados: UNAUTHENTICATED -> AUTHENTICATING -> READY -> CYCLING -> READY ...
(o vuelta a UNAUTHENTICATED si el appliance deja de aceptar la sesión) y
SHUTTING_DOWN al pedir parada.

Reglas:
- Antes de autenticar se sondea el appliance con backoff fijo hasta que
  responde algo reconocible (el agente puede arrancar antes que el appliance).
- El primer ciclo tras arrancar solo converge; los siguientes además persisten
  el estado remoto en el fichero si su forma canónica cambió.
- Un ciclo en curso no se interrumpe: la parada solo se atiende en las esperas.
- `release` de la sesión se ejecuta siempre al salir.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TextIO

import httpx

from adapters.pihole_api import probe
from adapters.state_file import load_desired_state, write_state_if_changed
from core.config import AppSettings
from core.domain.errors import AuthenticationError, ConfigError
from core.domain.models import ApiErrorDetail
from core.domain.state import SyncState
from core.services.converger import ConvergeReport, converge
from core.services.differ import diff
from core.services.puller import pull
from core.services.session import SessionManager

logger = logging.getLogger(__name__)


class LoopState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    READY = "ready"
    CYCLING = "cycling"
    SHUTTING_DOWN = "shutting_down"


@dataclass
class CycleOutcome:
    """Resultado de un ciclo (se descarta tras usarlo)."""

    delta: SyncState | None = None
    report: ConvergeReport | None = None
    persisted: bool = False
    error: ApiErrorDetail | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and (self.report is None or self.report.ok)

    @property
    def changed(self) -> bool:
        return self.report is not None and self.report.changed


class Reconciler:
    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        sessions: SessionManager,
        settings: AppSettings,
        sink: TextIO | None = None,
    ) -> None:
        self._client = client
        self._sessions = sessions
        self._settings = settings
        self._sink = sink
        self._stop = asyncio.Event()
        self.state = LoopState.UNAUTHENTICATED
        self.last_outcome: CycleOutcome | None = None

    def request_stop(self) -> None:
        """Pide parada; se atiende en la siguiente espera, no a mitad de ciclo."""

        logger.info("Stop requested")
        self._stop.set()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    async def run(self, *, once: bool = False) -> None:
        """Arranca y reconcilia hasta que se pida parada.

        Levanta `ConfigError` si el fichero deseado no sirve al arrancar y
        `AuthenticationError` si el appliance rechaza la credencial.
        """

        try:
            load_desired_state(self._settings.config_file)

            first_cycle = True
            while not self.stopping:
                if not self._sessions.authenticated and not await self.authenticate():
                    break

                outcome = await self.run_cycle(persist=not first_cycle)
                first_cycle = False
                if once:
                    break
                if self.state is LoopState.UNAUTHENTICATED:
                    logger.warning("Session lost; re-authenticating after the next interval")
                elif outcome.error is not None and outcome.error.is_transport:
                    logger.warning("Cycle could not reach the appliance; retrying next interval")
                await self._pause(self._settings.sync_interval_seconds)
        finally:
            self.state = LoopState.SHUTTING_DOWN
            released = await self._sessions.release()
            if not released.ok:
                logger.warning("Session release failed: %s", released.error.describe())

    async def authenticate(self) -> bool:
        """Sondeo de salud + `acquire`. False si se pidió parada mientras tanto."""

        while not self.stopping:
            self.state = LoopState.UNAUTHENTICATED
            reachable = await probe(self._client)
            if not reachable.ok:
                logger.info("Appliance not reachable yet (%s)", reachable.error.describe())
                await self._pause(self._settings.health_backoff_seconds)
                continue

            self.state = LoopState.AUTHENTICATING
            acquired = await self._sessions.acquire(self._settings.password)
            if acquired.ok:
                self.state = LoopState.READY
                if self._settings.prune_stale_sessions:
                    await self._sessions.prune_stale()
                return True
            if acquired.error.is_transport:
                await self._pause(self._settings.health_backoff_seconds)
                continue
            self.state = LoopState.UNAUTHENTICATED
            raise AuthenticationError(acquired.error)
        return False

    async def run_cycle(self, *, persist: bool) -> CycleOutcome:
        """pull -> diff -> converge (-> persistir). No se interrumpe a medias."""

        self.state = LoopState.CYCLING
        try:
            outcome = await self._cycle(persist=persist)
        finally:
            if self.state is LoopState.CYCLING:
                self.state = LoopState.READY

        error = outcome.error or (outcome.report.error if outcome.report else None)
        if outcome.report and outcome.report.rebuild and outcome.report.rebuild.error:
            error = error or outcome.report.rebuild.error
        if error is not None and error.is_auth_failure:
            self._sessions.invalidate(error.describe())
            self.state = LoopState.UNAUTHENTICATED
        self.last_outcome = outcome
        return outcome

    async def _cycle(self, *, persist: bool) -> CycleOutcome:
        path = self._settings.config_file
        try:
            desired = load_desired_state(path)
        except ConfigError as exc:
            logger.error("Skipping cycle: %s", exc)
            return CycleOutcome(error=ApiErrorDetail(key="config-error", message=str(exc)))

        accessor = self._sessions.current
        pulled = await pull(self._client, accessor)
        if pulled.error is not None:
            logger.error("Pull failed: %s", pulled.error.describe())
            return CycleOutcome(error=pulled.error)

        delta = diff(desired, pulled.value)
        outcome = CycleOutcome(delta=delta)
        if delta.is_empty():
            logger.info("Appliance already in sync with %s", path)
            outcome.report = ConvergeReport()
        else:
            logger.info("%d desired entries missing on the appliance", delta.count())
            outcome.report = await converge(self._client, accessor, delta, sink=self._sink)

        if not persist:
            return outcome
        if not outcome.report.ok:
            # El snapshot no contiene lo que quedó sin aplicar; no se persiste.
            return outcome

        snapshot = pulled.value
        if outcome.report.changed:
            refreshed = await pull(self._client, accessor)
            if refreshed.error is not None:
                logger.warning("Post-converge pull failed: %s", refreshed.error.describe())
                outcome.error = refreshed.error
                return outcome
            snapshot = refreshed.value

        try:
            outcome.persisted = write_state_if_changed(path, snapshot)
        except OSError as exc:
            logger.error("Could not write %s: %s", path, exc)
            return outcome
        if outcome.persisted:
            logger.info("Remote drift written back to %s", path)
        return outcome

    async def _pause(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
