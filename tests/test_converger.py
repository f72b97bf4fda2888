"""Converger: ordered sequential additions, abort on first failure, rebuild gating."""

from __future__ import annotations

import asyncio
import io
import json

import httpx

from core.domain.models import MatchMode, Session
from core.domain.state import DomainSpec, SyncState
from core.services.converger import converge
from fakes import FakeAppliance

SESSION = Session(sid="sid-7")


def _ready(appliance: FakeAppliance) -> FakeAppliance:
    appliance.sessions[7] = {"sid": "sid-7", "user_agent": "pihole-sync"}
    return appliance


def _converge(appliance: FakeAppliance, delta: SyncState, sink: io.StringIO | None = None):
    async def scenario():
        async with appliance.client() as client:
            return await converge(client, lambda: SESSION, delta, sink=sink or io.StringIO())

    return asyncio.run(scenario())


def test_missing_list_is_added_and_rebuild_runs(appliance: FakeAppliance):
    _ready(appliance)
    sink = io.StringIO()

    report = _converge(appliance, SyncState(lists={"block": ["ads.example.com"]}), sink)

    assert report.ok
    assert report.changed
    assert report.rebuilt
    assert report.applied == ["block list ads.example.com"]
    assert [l["address"] for l in appliance.lists] == ["ads.example.com"]
    assert appliance.gravity_runs == 1
    assert "Done" in sink.getvalue()


def test_empty_delta_makes_no_calls(appliance: FakeAppliance):
    _ready(appliance)

    report = _converge(appliance, SyncState())

    assert report.ok
    assert not report.changed
    assert report.rebuild is None
    assert appliance.requests == []


def test_partial_failure_aborts_keeps_applied_and_still_rebuilds(appliance: FakeAppliance):
    _ready(appliance)
    appliance.rejected.add("https://b")
    delta = SyncState(lists={"block": ["https://a", "https://b", "https://c"]})

    report = _converge(appliance, delta)

    assert not report.ok
    assert report.changed
    assert report.applied == ["block list https://a"]
    assert report.failure.identity == "block list https://b"
    assert report.error.key == "bad_request"
    assert "https://b" in report.failure.describe()
    assert [l["address"] for l in appliance.lists] == ["https://a"]
    posted = [json.loads(r.content)["address"] for r in appliance.calls("POST", "lists")]
    assert posted == ["https://a", "https://b"]
    assert appliance.gravity_runs == 1


def test_failure_on_first_addition_skips_rebuild(appliance: FakeAppliance):
    _ready(appliance)
    appliance.rejected.add("https://a")

    report = _converge(appliance, SyncState(lists={"block": ["https://a"]}))

    assert not report.ok
    assert not report.changed
    assert report.rebuild is None
    assert appliance.gravity_runs == 0


def test_lists_are_applied_before_domains(appliance: FakeAppliance):
    _ready(appliance)
    delta = SyncState(
        lists={"allow": ["https://allow"], "block": ["https://block"]},
        domains={"block": [DomainSpec(domain="^ads", kind=MatchMode.REGEX)], "allow": [DomainSpec(domain="ok.com")]},
    )

    report = _converge(appliance, delta)

    assert report.applied == [
        "block list https://block",
        "allow list https://allow",
        "block regex domain ^ads",
        "allow exact domain ok.com",
    ]
    paths = [r.url.path for r in appliance.requests if r.method == "POST"]
    assert paths == [
        "/api/lists",
        "/api/lists",
        "/api/domains/deny/regex",
        "/api/domains/allow/exact",
        "/api/action/gravity",
    ]


def test_rebuild_failure_is_reported_without_undoing(appliance: FakeAppliance):
    _ready(appliance)
    appliance.overrides[("POST", "action/gravity")] = httpx.Response(
        500, json={"error": {"key": "gravity_busy", "message": "already running", "hint": None}}
    )

    report = _converge(appliance, SyncState(lists={"block": ["https://a"]}))

    assert report.ok
    assert report.changed
    assert not report.rebuilt
    assert report.rebuild.error.key == "gravity_busy"
    assert [l["address"] for l in appliance.lists] == ["https://a"]
