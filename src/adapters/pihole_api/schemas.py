"""Esquemas de las respuestas HTTP del appliance.

Por qué separados del dominio:
- El appliance usa `type` para el bucket y `kind` para el modo de coincidencia;
  el dominio usa nombres propios (`kind`, `match_mode`). La traducción vive aquí.
- Todo payload se valida antes de llegar al Differ/Converger.
"""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from core.domain.models import (
    ITEM_REJECTED,
    ApiErrorDetail,
    DomainEntry,
    KindField,
    ListEntry,
    MatchMode,
    SessionInfo,
)


class ErrorEnvelope(BaseModel):
    """`{error: {key, message, hint}}`: cualquier respuesta así es un fallo."""

    error: ApiErrorDetail


class WireList(BaseModel):
    model_config = ConfigDict(extra="ignore")

    address: str = Field(..., min_length=1)
    comment: str | None = None
    type: KindField

    def to_entry(self) -> ListEntry:
        return ListEntry(address=self.address, comment=self.comment, kind=self.type)


class WireDomain(BaseModel):
    model_config = ConfigDict(extra="ignore")

    domain: str = Field(..., min_length=1)
    comment: str | None = None
    type: KindField
    kind: MatchMode

    def to_entry(self) -> DomainEntry:
        return DomainEntry(
            domain=self.domain,
            comment=self.comment,
            kind=self.type,
            match_mode=self.kind,
        )


class ProcessedItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    item: str | None = None
    error: str | None = None


class Processed(BaseModel):
    """Resumen `processed` de un POST: qué items se aplicaron y cuáles no."""

    model_config = ConfigDict(extra="ignore")

    errors: list[ProcessedItem] = Field(default_factory=list)
    success: list[ProcessedItem] = Field(default_factory=list)

    def rejection(self) -> ApiErrorDetail | None:
        # Un 201 con solo errores es un rechazo, aunque no traiga envelope.
        if not self.errors or self.success:
            return None
        first = self.errors[0]
        return ApiErrorDetail(
            key=ITEM_REJECTED,
            message=f"{first.item}: {first.error or 'rejected'}",
        )


class ListsResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    lists: list[WireList]
    processed: Processed | None = None

    def rejection(self) -> ApiErrorDetail | None:
        return self.processed.rejection() if self.processed else None

    def entries(self) -> list[ListEntry]:
        return [item.to_entry() for item in self.lists]


class DomainsResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    domains: list[WireDomain]
    processed: Processed | None = None

    def rejection(self) -> ApiErrorDetail | None:
        return self.processed.rejection() if self.processed else None

    def entries(self) -> list[DomainEntry]:
        return [item.to_entry() for item in self.domains]


class AuthSessionBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sid: str | None = None
    valid: bool
    message: str | None = None


class AuthResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    session: AuthSessionBody


class SessionsResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sessions: list[SessionInfo]
