"""Pytest configuration: put `src/` on the import path and share fixtures."""

from __future__ import annotations

import json
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
TESTS_DIR = PROJECT_ROOT / "tests"
for path in (SRC_DIR, TESTS_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

import pytest

from fakes import FakeAppliance


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Keep real user/env configuration out of the tests."""

    for name in (
        "PIHOLE_API",
        "PIHOLE_PASSWORD",
        "CONFIG_FILE",
        "PIHOLE_SYNC_API_URL",
        "PIHOLE_SYNC_PASSWORD",
        "PIHOLE_SYNC_CONFIG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def appliance() -> FakeAppliance:
    return FakeAppliance()


@pytest.fixture
def desired_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "lists": {"block": ["https://ads.example.com/hosts"]},
                "domains": {"allow": [{"domain": "good.example.com", "kind": "exact"}]},
            }
        ),
        encoding="utf-8",
    )
    return path
