"""Modelos y entidades del dominio.

Por qué:
- Aquí viven las estructuras puras y estrictas (Pydantic v2): entradas de
  listas/dominios, el `SyncState` declarativo y el `ApiResult` de cada llamada.
- El dominio no conoce HTTP, CLI, ni ficheros: solo conceptos del problema.
"""
