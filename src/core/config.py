"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (HTTP) y el bucle de reconciliación lean la
  configuración de forma consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_NAME = "pihole-sync"


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / APP_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / APP_NAME
    return Path.home() / ".config" / APP_NAME


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str | None], env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# pihole-sync user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central del agente.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Acepta también los nombres históricos (`PIHOLE_API`, `PIHOLE_PASSWORD`,
      `CONFIG_FILE`) para despliegues existentes.
    """

    model_config = SettingsConfigDict(
        env_prefix="PIHOLE_SYNC_",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    api_url: str = Field(
        default="http://pi.hole/api",
        min_length=8,
        validation_alias=AliasChoices("PIHOLE_SYNC_API_URL", "PIHOLE_API"),
        description="Base URL de la API del appliance.",
    )
    password: str = Field(
        default="",
        validation_alias=AliasChoices("PIHOLE_SYNC_PASSWORD", "PIHOLE_PASSWORD"),
        description="Credencial del appliance (vacía si no tiene contraseña).",
    )
    config_file: Path = Field(
        default=Path("config.json"),
        validation_alias=AliasChoices("PIHOLE_SYNC_CONFIG_FILE", "CONFIG_FILE"),
        description="Ruta al fichero JSON de estado deseado.",
    )

    http_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout por request (segundos). El cuerpo del rebuild está exento.",
    )
    sync_interval_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Intervalo entre ciclos de reconciliación (segundos).",
    )
    health_backoff_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Espera entre sondeos mientras el appliance no responde.",
    )
    client_id: str = Field(
        default=APP_NAME,
        min_length=1,
        description="Identificador de cliente (User-Agent) en cada llamada.",
    )
    prune_stale_sessions: bool = Field(
        default=True,
        description="Borrar sesiones huérfanas de ejecuciones anteriores.",
    )

    log_level: str = Field(
        default="INFO",
        description="Nivel de logging (DEBUG, INFO, WARNING...).",
    )
    log_file: Path | None = Field(
        default=None,
        description="Fichero de log rotativo opcional.",
    )

    @property
    def base_url(self) -> str:
        # Con barra final, httpx resuelve rutas relativas bajo /api/.
        return self.api_url.rstrip("/") + "/"
