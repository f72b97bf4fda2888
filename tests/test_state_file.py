"""Desired-state codec: canonical form, validation and change-gated writes."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from adapters.state_file import (
    decode_state,
    encode_state,
    load_desired_state,
    write_state,
    write_state_if_changed,
)
from core.domain.errors import ConfigError
from core.domain.models import ListKind, MatchMode
from core.domain.state import DomainSpec, SyncState


def _state() -> SyncState:
    return SyncState(
        lists={"block": ["https://b.example/hosts", "https://a.example/hosts"]},
        domains={
            "allow": [
                DomainSpec(domain="z.example.com"),
                DomainSpec(domain="a.example.com", comment="cdn", kind=MatchMode.REGEX),
            ],
        },
    )


def test_encode_is_canonical_regardless_of_input_order():
    first = SyncState.model_validate(
        {
            "lists": {"allow": ["https://y"], "block": ["https://b", "https://a"]},
            "domains": {"block": [{"kind": "exact", "domain": "x.com"}, {"domain": "a.com", "kind": "regex"}]},
        }
    )
    second = SyncState.model_validate(
        {
            "domains": {"block": [{"domain": "a.com", "kind": "regex"}, {"domain": "x.com", "kind": "exact"}]},
            "lists": {"block": ["https://a", "https://b"], "allow": ["https://y"]},
        }
    )

    assert encode_state(first) == encode_state(second)
    assert encode_state(first) == encode_state(first)
    payload = json.loads(encode_state(first))
    assert list(payload) == ["domains", "lists"]
    assert payload["lists"]["block"] == ["https://a", "https://b"]
    assert [d["domain"] for d in payload["domains"]["block"]] == ["a.com", "x.com"]


def test_decode_encode_round_trip():
    state = _state()
    assert decode_state(encode_state(state)) == state


def test_empty_buckets_and_null_comments_are_dropped():
    state = SyncState.model_validate({"lists": {"block": [], "allow": None}, "domains": {}})
    assert json.loads(encode_state(state)) == {"domains": {}, "lists": {}}
    allow = json.loads(encode_state(_state()))["domains"]["allow"]
    assert allow == [
        {"comment": "cdn", "domain": "a.example.com", "kind": "regex"},
        {"domain": "z.example.com", "kind": "exact"},
    ]


def test_deny_is_an_alias_for_block():
    state = SyncState.model_validate(
        {"domains": {"deny": [{"domain": "a.com", "kind": "exact"}], "block": [{"domain": "b.com", "kind": "exact"}]}}
    )
    assert [d.domain for d in state.domains[ListKind.BLOCK]] == ["a.com", "b.com"]


def test_load_missing_file_raises_config_error(tmp_path: Path):
    with pytest.raises(ConfigError, match="not found"):
        load_desired_state(tmp_path / "nope.json")


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        json.dumps({"lists": {"maybe": ["https://a"]}}),
        json.dumps(["a"]),
        json.dumps({"lists": {"block": "https://ads.example/hosts"}}),
        json.dumps({"domains": {"allow": {"domain": "x.com", "kind": "exact"}}}),
    ],
)
def test_load_invalid_file_raises_config_error(tmp_path: Path, content: str):
    path = tmp_path / "config.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_desired_state(path)


def test_write_state_if_changed_only_writes_on_semantic_change(tmp_path: Path):
    path = tmp_path / "config.json"
    state = _state()

    assert write_state_if_changed(path, state) is True
    assert write_state_if_changed(path, state) is False

    # Same content, different formatting: left alone.
    path.write_text(json.dumps(json.loads(path.read_text(encoding="utf-8"))), encoding="utf-8")
    before = path.read_text(encoding="utf-8")
    assert write_state_if_changed(path, state) is False
    assert path.read_text(encoding="utf-8") == before

    grown = SyncState(lists={"block": ["https://new.example/hosts"]})
    assert write_state_if_changed(path, grown) is True
    assert load_desired_state(path) == grown


def test_write_state_if_changed_leaves_unparseable_file(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text('{"lists": {', encoding="utf-8")
    assert write_state_if_changed(path, _state()) is False
    assert path.read_text(encoding="utf-8") == '{"lists": {'


def test_write_state_creates_parent_dirs(tmp_path: Path):
    target = write_state(tmp_path / "nested" / "config.json", _state())
    assert target.exists()
    assert not (target.parent / ".config.json.tmp").exists()
