"""Fichero JSON de estado deseado.

Por qué JSON canónico:
- Claves ordenadas y entradas ordenadas por su identidad: re-serializar datos
  semánticamente iguales produce exactamente los mismos bytes.
- Eso permite que el bucle escriba el estado remoto solo cuando cambia de
  verdad (sin churn de disco y sin pelearse con quien edita el fichero).

Formato:
    {"domains": {"allow": [{"domain": ..., "kind": "exact"}], "block": [...]},
     "lists": {"block": ["https://..."]}}
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from pydantic import ValidationError

from core.domain.errors import ConfigError
from core.domain.state import SyncState


def encode_state(state: SyncState) -> str:
    """Serializa un `SyncState` en su forma canónica (UTF-8, estable)."""

    payload = state.model_dump(mode="json", exclude_none=True)
    return json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n"


def decode_state(text: str) -> SyncState:
    """Parsea y valida; levanta `ValueError` (JSON) o `ValidationError`."""

    return SyncState.model_validate(json.loads(text))


def load_desired_state(path: Path) -> SyncState:
    if not path.exists():
        raise ConfigError(path, "desired-state file not found")
    try:
        return decode_state(path.read_text(encoding="utf-8"))
    except ValidationError as exc:
        raise ConfigError(path, f"invalid desired state ({exc.error_count()} error(s))") from exc
    except ValueError as exc:
        raise ConfigError(path, f"not valid JSON: {exc}") from exc
    except OSError as exc:
        raise ConfigError(path, f"unreadable: {exc}") from exc


def write_state(path: Path, state: SyncState) -> Path:
    """Escribe el estado de forma atómica (fichero temporal + replace)."""

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.tmp")
    tmp.write_text(encode_state(state), encoding="utf-8")
    os.replace(tmp, path)
    return path


def write_state_if_changed(path: Path, state: SyncState) -> bool:
    """Escribe solo si la forma canónica difiere de lo que hay en disco.

    Se compara contra la re-serialización canónica del fichero actual, así un
    formato distinto (indentación, orden) con el mismo contenido no provoca
    escritura. Si el fichero no parsea (alguien lo está editando) no se toca.
    """

    if path.exists():
        try:
            on_disk = decode_state(path.read_text(encoding="utf-8"))
        except (ValueError, ValidationError):
            return False
        if encode_state(on_disk) == encode_state(state):
            return False

    write_state(path, state)
    return True
