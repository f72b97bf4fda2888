"""Differ: qué entradas deseadas faltan en el appliance.

Función pura, sin I/O. Solo aditiva: nunca calcula borrados (lo que está en
el appliance y no en el fichero se deja tal cual).
"""

from __future__ import annotations

from core.domain.models import ListKind
from core.domain.state import DomainSpec, SyncState


def diff(desired: SyncState, remote: SyncState) -> SyncState:
    """Entradas de `desired` cuya identidad no está en el bucket de `remote`.

    Identidad exacta: listas por dirección, dominios por `(domain, kind)` dentro
    de su bucket. El comentario no cuenta. Duplicados del deseado salen una vez.
    """

    lists: dict[ListKind, list[str]] = {}
    for kind, addresses in desired.lists.items():
        present = set(remote.lists.get(kind, ()))
        missing: list[str] = []
        for address in addresses:
            if address in present:
                continue
            present.add(address)
            missing.append(address)
        if missing:
            lists[kind] = missing

    domains: dict[ListKind, list[DomainSpec]] = {}
    for kind, specs in desired.domains.items():
        seen = {(spec.domain, spec.kind) for spec in remote.domains.get(kind, ())}
        pending: list[DomainSpec] = []
        for spec in specs:
            identity = (spec.domain, spec.kind)
            if identity in seen:
                continue
            seen.add(identity)
            pending.append(spec)
        if pending:
            domains[kind] = pending

    return SyncState(lists=lists, domains=domains)
