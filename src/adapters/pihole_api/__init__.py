"""Cliente tipado de la API del appliance.

Por qué funciones y no clases:
- Cada familia (lists, domains, action, auth) es un conjunto de funciones
  sin estado que reciben un `httpx.AsyncClient` y un accessor de sesión.
- La sesión nunca se copia aquí: se lee en cada llamada a través del accessor,
  así que una invalidación se ve de inmediato.
"""

from adapters.pihole_api.actions import RebuildStream, rebuild
from adapters.pihole_api.auth import (
    auth_login,
    auth_logout,
    probe,
    sessions_delete,
    sessions_list,
)
from adapters.pihole_api.base import SessionAccessor
from adapters.pihole_api.domains import domain_add, domain_get
from adapters.pihole_api.lists import list_add, list_get

__all__ = [
    "RebuildStream",
    "SessionAccessor",
    "auth_login",
    "auth_logout",
    "domain_add",
    "domain_get",
    "list_add",
    "list_get",
    "probe",
    "rebuild",
    "sessions_delete",
    "sessions_list",
]
