"""Errores fatales del Core.

Los fallos remotos viajan como `ApiResult`; solo lo que impide arrancar se
levanta como excepción (no hay nada hacia lo que reconciliar, o no hay forma
de autenticarse).
"""

from __future__ import annotations

from pathlib import Path

from core.domain.models import ApiErrorDetail


class PiholeSyncError(Exception):
    """Base de los errores del agente."""


class ConfigError(PiholeSyncError):
    """El fichero de estado deseado falta, no es JSON o no valida."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class AuthenticationError(PiholeSyncError):
    """El appliance rechazó la credencial configurada."""

    def __init__(self, error: ApiErrorDetail) -> None:
        super().__init__(f"authentication failed: {error.describe()}")
        self.error = error
