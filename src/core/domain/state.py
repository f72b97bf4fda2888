"""Estado declarativo: deseado, remoto y diff comparten la misma forma.

Por qué una sola forma:
- El Differ compara bucket a bucket sin traducciones.
- La forma es exactamente la del fichero JSON de estado deseado, así que un
  pull puede persistirse tal cual.

Invariante:
- Un `SyncState` siempre está canonicalizado al construirse (buckets vacíos
  fuera, buckets en orden block/allow, entradas ordenadas por su campo de
  identidad principal). Dos estados semánticamente iguales serializan igual.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

from core.domain.models import DomainEntry, ListEntry, ListKind, MatchMode


class DomainSpec(BaseModel):
    """Dominio tal como aparece en el fichero (sin bucket: es la clave)."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    domain: str = Field(..., min_length=1)
    comment: str | None = None
    kind: MatchMode = Field(
        default=MatchMode.EXACT,
        description="Modo de coincidencia (exact/regex).",
    )

    def sort_key(self) -> tuple[str, str, str]:
        return (self.domain, self.kind.value, self.comment or "")


def _merge_kind_keys(value: Any) -> Any:
    # `deny` y `block` son el mismo bucket; si llegan ambos se concatenan.
    if not isinstance(value, dict):
        return value
    merged: dict[ListKind, list[Any]] = {}
    for raw_key, items in value.items():
        key = ListKind(raw_key.strip().lower()) if isinstance(raw_key, str) else raw_key
        if items is None:
            continue
        if not isinstance(items, (list, tuple)):
            raise ValueError(f"bucket {raw_key!r} must be a list, got {type(items).__name__}")
        merged.setdefault(key, []).extend(items)
    return merged


class SyncState(BaseModel):
    """DesiredState / RemoteState / Diff."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    lists: dict[ListKind, list[str]] = Field(
        default_factory=dict,
        description="Direcciones de listas por bucket.",
    )
    domains: dict[ListKind, list[DomainSpec]] = Field(
        default_factory=dict,
        description="Dominios por bucket.",
    )

    @field_validator("lists", "domains", mode="before")
    @classmethod
    def _normalize_keys(cls, value: Any) -> Any:
        return _merge_kind_keys(value)

    @field_validator("lists", mode="after")
    @classmethod
    def _sort_lists(cls, value: dict[ListKind, list[str]]) -> dict[ListKind, list[str]]:
        return {kind: sorted(value[kind]) for kind in ListKind if value.get(kind)}

    @field_validator("domains", mode="after")
    @classmethod
    def _sort_domains(
        cls, value: dict[ListKind, list[DomainSpec]]
    ) -> dict[ListKind, list[DomainSpec]]:
        return {
            kind: sorted(value[kind], key=DomainSpec.sort_key)
            for kind in ListKind
            if value.get(kind)
        }

    @classmethod
    def from_entries(
        cls,
        *,
        lists: Iterable[ListEntry] = (),
        domains: Iterable[DomainEntry] = (),
    ) -> "SyncState":
        """Pliega entradas planas (como las devuelve la API) en buckets."""

        list_buckets: dict[ListKind, list[str]] = {}
        for entry in lists:
            list_buckets.setdefault(entry.kind, []).append(entry.address)

        domain_buckets: dict[ListKind, list[DomainSpec]] = {}
        for entry in domains:
            domain_buckets.setdefault(entry.kind, []).append(
                DomainSpec(domain=entry.domain, comment=entry.comment, kind=entry.match_mode)
            )
        return cls(lists=list_buckets, domains=domain_buckets)

    def list_entries(self) -> Iterator[ListEntry]:
        for kind, addresses in self.lists.items():
            for address in addresses:
                yield ListEntry(address=address, kind=kind)

    def domain_entries(self) -> Iterator[DomainEntry]:
        for kind, specs in self.domains.items():
            for spec in specs:
                yield DomainEntry(
                    domain=spec.domain,
                    comment=spec.comment,
                    kind=kind,
                    match_mode=spec.kind,
                )

    def is_empty(self) -> bool:
        return not self.lists and not self.domains

    def count(self) -> int:
        return sum(len(v) for v in self.lists.values()) + sum(
            len(v) for v in self.domains.values()
        )
