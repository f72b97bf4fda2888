"""Script de ejecución.

Por qué existe:
- Permite ejecutar la CLI con `python src/main.py` (p.ej. en un contenedor).
- El entrypoint instalado es `pihole-sync` (ver pyproject.toml).
"""

from __future__ import annotations

from cli.main import run


def main() -> None:
    run()


if __name__ == "__main__":
    main()
