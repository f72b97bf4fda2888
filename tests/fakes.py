"""In-memory Pi-hole API used by the tests (served through httpx.MockTransport)."""

from __future__ import annotations

import json
from typing import Iterable

import httpx

from adapters.http_client import build_async_client
from core.config import AppSettings

BASE = "/api/"


def _error(status: int, key: str, message: str, hint: str | None = None) -> httpx.Response:
    return httpx.Response(status, json={"error": {"key": key, "message": message, "hint": hint}})


class FakeAppliance:
    """Enough of the appliance to exercise auth, lists, domains and gravity."""

    def __init__(
        self,
        *,
        password: str = "secret",
        lists: Iterable[dict] = (),
        domains: Iterable[dict] = (),
        gravity_chunks: Iterable[str] = ("  [i] Building tree\n", "  [✓] Done\n"),
    ) -> None:
        self.password = password
        self.lists: list[dict] = [dict(item) for item in lists]
        self.domains: list[dict] = [dict(item) for item in domains]
        self.gravity_chunks = list(gravity_chunks)
        self.sessions: dict[int, dict] = {}
        self.requests: list[httpx.Request] = []
        self.rejected: set[str] = set()
        # One-shot canned responses, consumed by the first matching request.
        self.overrides: dict[tuple[str, str], httpx.Response] = {}
        self.down = False
        self.gravity_runs = 0
        self._next_id = 1

    # -- helpers ---------------------------------------------------------------
    def add_stale_session(self, user_agent: str) -> int:
        session_id = self._next_id
        self._next_id += 1
        self.sessions[session_id] = {"sid": f"stale-{session_id}", "user_agent": user_agent}
        return session_id

    def expire_sessions(self) -> None:
        self.sessions.clear()

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == BASE + path]

    def count(self, method: str, path: str) -> int:
        return len(self.calls(method, path))

    def client(self, settings: AppSettings | None = None) -> httpx.AsyncClient:
        settings = settings or make_settings()
        return build_async_client(settings, transport=httpx.MockTransport(self.handle))

    # -- transport -------------------------------------------------------------
    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)

        path = request.url.path.removeprefix(BASE)
        override = self.overrides.pop((request.method, path), None)
        if override is not None:
            return override

        if path == "auth":
            return self._auth(request)
        if not self._authorized(request):
            return _error(401, "unauthorized", "Unauthorized")

        if path == "auth/sessions" and request.method == "GET":
            return self._list_sessions(request)
        if path.startswith("auth/session/") and request.method == "DELETE":
            session_id = int(path.rsplit("/", 1)[1])
            if self.sessions.pop(session_id, None) is None:
                return _error(404, "not_found", "Session not found")
            return httpx.Response(204)
        if path == "lists":
            return self._lists(request)
        if path == "domains" and request.method == "GET":
            return httpx.Response(200, json={"domains": self.domains, "took": 0.001})
        if path.startswith("domains/") and request.method == "POST":
            return self._add_domain(request, path)
        if path == "action/gravity" and request.method == "POST":
            self.gravity_runs += 1
            return httpx.Response(200, text="".join(self.gravity_chunks))
        return _error(404, "not_found", f"No route for {request.method} {path}")

    def _sid(self, request: httpx.Request) -> str | None:
        return request.headers.get("sid")

    def _authorized(self, request: httpx.Request) -> bool:
        if not self.password:
            return True
        sid = self._sid(request)
        return any(s["sid"] == sid for s in self.sessions.values())

    def _auth(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            valid = self._authorized(request)
            return httpx.Response(
                200 if valid else 401,
                json={"session": {"valid": valid, "sid": None, "message": None}},
            )
        if request.method == "DELETE":
            sid = self._sid(request)
            for session_id, data in list(self.sessions.items()):
                if data["sid"] == sid:
                    del self.sessions[session_id]
                    return httpx.Response(204)
            return _error(401, "unauthorized", "Unauthorized")

        body = json.loads(request.content or b"{}")
        if not self.password:
            return httpx.Response(
                200,
                json={"session": {"valid": True, "sid": None, "message": "no password set"}},
            )
        if body.get("password") != self.password:
            return httpx.Response(
                401,
                json={"session": {"valid": False, "sid": None, "message": "password incorrect"}},
            )
        session_id = self._next_id
        self._next_id += 1
        sid = f"sid-{session_id}"
        self.sessions[session_id] = {"sid": sid, "user_agent": request.headers.get("user-agent")}
        return httpx.Response(
            200,
            json={"session": {"valid": True, "totp": False, "sid": sid, "validity": 1800, "message": "password correct"}},
        )

    def _list_sessions(self, request: httpx.Request) -> httpx.Response:
        sid = self._sid(request)
        sessions = [
            {
                "id": session_id,
                "current_session": data["sid"] == sid,
                "valid": True,
                "remote_addr": "127.0.0.1",
                "user_agent": data["user_agent"],
            }
            for session_id, data in self.sessions.items()
        ]
        return httpx.Response(200, json={"sessions": sessions})

    def _lists(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json={"lists": self.lists, "took": 0.001})
        body = json.loads(request.content)
        address = body["address"]
        if address in self.rejected:
            return _error(400, "bad_request", f"Invalid address {address}", "check the URL")
        entry = {
            "address": address,
            "comment": body.get("comment"),
            "type": request.url.params["type"],
            "enabled": True,
            "id": len(self.lists) + 1,
        }
        if not any(l["address"] == address and l["type"] == entry["type"] for l in self.lists):
            self.lists.append(entry)
        return httpx.Response(201, json={"lists": [entry], "processed": {"errors": [], "success": [{"item": address}]}})

    def _add_domain(self, request: httpx.Request, path: str) -> httpx.Response:
        _, type_, kind = path.split("/")
        body = json.loads(request.content)
        domain = body["domain"]
        if domain in self.rejected:
            return _error(400, "bad_request", f"Invalid domain {domain}")
        entry = {"domain": domain, "comment": body.get("comment"), "type": type_, "kind": kind, "enabled": True}
        if not any((d["domain"], d["type"], d["kind"]) == (domain, type_, kind) for d in self.domains):
            self.domains.append(entry)
        return httpx.Response(201, json={"domains": [entry], "processed": {"errors": [], "success": [{"item": domain}]}})


def make_settings(**overrides) -> AppSettings:
    values = {
        "api_url": "http://pi.hole/api",
        "password": "secret",
        "http_timeout_seconds": 5.0,
        "sync_interval_seconds": 0.01,
        "health_backoff_seconds": 0.01,
    }
    values.update(overrides)
    return AppSettings(_env_file=None, **values)
