"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta en el borde (respuestas HTTP, fichero de estado)
  sin acoplar el Core a librerías de I/O.
- Las entradas de listas/dominios tienen una identidad bien definida que el
  Differ usa para decidir qué falta en el appliance.

Nota:
- Estos modelos describen *qué* es la configuración, no *cómo* se obtiene.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Callable, Generic, TypeVar

from pydantic import BaseModel, BeforeValidator, Field
from pydantic.config import ConfigDict

# Claves sintetizadas por el cliente: nunca las produce el appliance.
TRANSPORT_ERROR = "transport-error"
TRANSPORT_TIMEOUT = "transport-timeout"
TRANSPORT_MALFORMED = "transport-malformed"
NOT_AUTHENTICATED = "not-authenticated"
INVALID_INPUT = "invalid-input"
INVALID_SESSION = "invalid-session"
ITEM_REJECTED = "item-rejected"

_AUTH_FAILURE_KEYS = frozenset({"unauthorized", INVALID_SESSION, NOT_AUTHENTICATED})


class ListKind(str, Enum):
    """Bucket de una entrada: bloquear o permitir."""

    BLOCK = "block"
    ALLOW = "allow"

    @classmethod
    def _missing_(cls, value: object) -> "ListKind | None":
        # El appliance llama `deny` al bucket de bloqueo en /domains.
        if isinstance(value, str) and value.strip().lower() == "deny":
            return cls.BLOCK
        return None

    @property
    def domain_token(self) -> str:
        """Token usado por el appliance en las rutas de /domains."""

        return "deny" if self is ListKind.BLOCK else self.value


class MatchMode(str, Enum):
    EXACT = "exact"
    REGEX = "regex"


def coerce_list_kind(value: Any) -> Any:
    if isinstance(value, str) and not isinstance(value, ListKind):
        return ListKind(value.strip().lower())
    return value


KindField = Annotated[ListKind, BeforeValidator(coerce_list_kind)]


class ListEntry(BaseModel):
    """Una lista de adlists (URL) configurada en el appliance.

    Identidad: `(address, kind)`. El comentario no participa.
    """

    model_config = ConfigDict(frozen=True)

    address: str = Field(
        ...,
        min_length=1,
        description="URL de la lista remota.",
    )
    comment: str | None = Field(
        default=None,
        description="Comentario libre (no forma parte de la identidad).",
    )
    kind: KindField = Field(
        ...,
        description="Bucket de la lista (block/allow).",
    )

    @property
    def identity(self) -> tuple[str, ListKind]:
        return (self.address, self.kind)

    def label(self) -> str:
        return f"{self.kind.value} list {self.address}"


class DomainEntry(BaseModel):
    """Un dominio exacto o regex en el bucket block/allow.

    Identidad: `(domain, kind, match_mode)`.
    """

    model_config = ConfigDict(frozen=True)

    domain: str = Field(
        ...,
        min_length=1,
        description="Dominio o expresión regular.",
    )
    comment: str | None = Field(
        default=None,
        description="Comentario libre (no forma parte de la identidad).",
    )
    kind: KindField = Field(
        ...,
        description="Bucket del dominio (block/allow).",
    )
    match_mode: MatchMode = Field(
        ...,
        description="Modo de coincidencia (exact/regex).",
    )

    @property
    def identity(self) -> tuple[str, ListKind, MatchMode]:
        return (self.domain, self.kind, self.match_mode)

    def label(self) -> str:
        return f"{self.kind.value} {self.match_mode.value} domain {self.domain}"


class Session(BaseModel):
    """Sesión autenticada contra el appliance.

    `sid` es None cuando el appliance no tiene contraseña configurada: la sesión
    es válida, simplemente no hay token que adjuntar.
    """

    model_config = ConfigDict(frozen=True)

    sid: str | None = Field(
        default=None,
        description="Token opaco de sesión (header `sid`).",
    )

    @property
    def is_tokenless(self) -> bool:
        return self.sid is None


class SessionInfo(BaseModel):
    """Sesión listada por `GET /auth/sessions` (housekeeping)."""

    model_config = ConfigDict(extra="ignore")

    id: int
    current_session: bool
    valid: bool
    remote_addr: str | None = None
    user_agent: str | None = None


class ApiErrorDetail(BaseModel):
    """Detalle de error: del appliance (envelope) o sintetizado por el cliente."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    key: str = Field(..., min_length=1)
    message: str = Field(default="")
    hint: str | None = None

    @property
    def is_transport(self) -> bool:
        """True si no pudimos hablar con el appliance (no es un rechazo)."""

        return self.key.startswith("transport-")

    @property
    def is_auth_failure(self) -> bool:
        return self.key in _AUTH_FAILURE_KEYS

    def describe(self) -> str:
        text = f"{self.key}: {self.message}" if self.message else self.key
        if self.hint:
            text += f" ({self.hint})"
        return text


T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class ApiResult(Generic[T]):
    """Resultado estricto de una operación remota: `ok` + `value` o `error`.

    Por qué un valor y no excepciones:
    - Ninguna operación remota puede tragarse un error en silencio; el llamador
      siempre recibe el detalle y decide (abortar ciclo, re-autenticar...).
    """

    value: T | None = None
    error: ApiErrorDetail | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "ApiResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, key: str, message: str, hint: str | None = None) -> "ApiResult[T]":
        return cls(error=ApiErrorDetail(key=key, message=message, hint=hint))

    @classmethod
    def from_error(cls, error: ApiErrorDetail) -> "ApiResult[T]":
        return cls(error=error)

    def map(self, fn: Callable[[T], U]) -> "ApiResult[U]":
        if self.error is not None:
            return ApiResult(error=self.error)
        return ApiResult(value=fn(self.value))  # type: ignore[arg-type]
