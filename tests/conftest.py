from __future__ import annotations

import datetime as dt
import json
import threading
from collections.abc import Iterator
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlparse

import pytest

from crmclient.config import CrmClientConfig

COLLECTIONS = ("contacts", "deals", "tasks", "activities")
SEARCH_FIELDS = ("first_name", "last_name", "email", "company")


class FakeCrmApi:
    """In-memory stand-in for the CRM REST API."""

    def __init__(self) -> None:
        self.url = ""
        self.lock = threading.Lock()
        self.accounts: dict[str, dict[str, Any]] = {
            "a@b.com": {"password": "x", "token": "T1", "user": {"id": 1, "name": "A"}},
        }
        self.records: dict[str, list[dict[str, Any]]] = {name: [] for name in COLLECTIONS}
        self.requests: list[dict[str, Any]] = []
        self.overrides: dict[tuple[str, str], tuple[int, Any]] = {}
        self._next_id = 1
        self._clock = dt.datetime(2024, 1, 1, tzinfo=dt.UTC)

    def seed(self, collection: str, **fields: Any) -> dict[str, Any]:
        with self.lock:
            return self._insert(collection, fields)

    def fail(self, method: str, path: str, status: int, payload: Any = None) -> None:
        self.overrides[(method, path)] = (status, payload or {"message": f"forced {status}"})

    def valid_tokens(self) -> set[str]:
        return {account["token"] for account in self.accounts.values()}

    def _insert(self, collection: str, fields: dict[str, Any]) -> dict[str, Any]:
        record = dict(fields)
        record["id"] = self._next_id
        self._next_id += 1
        if collection == "deals":
            record["value"] = float(record.get("value") or 0)
        if collection == "activities" and not record.get("created_at"):
            self._clock += dt.timedelta(minutes=1)
            record["created_at"] = self._clock.isoformat().replace("+00:00", "Z")
        self.records[collection].append(record)
        return record

    def handle(
        self, method: str, raw_path: str, headers: dict[str, str], body: Any
    ) -> tuple[int, Any]:
        path = urlparse(raw_path).path
        with self.lock:
            self.requests.append(
                {"method": method, "path": path, "headers": headers, "body": body}
            )
            override = self.overrides.get((method, path))
            if override is not None:
                return override
            if path == "/api/auth/login" and method == "POST":
                return self._login(body or {})
            if path == "/api/auth/register" and method == "POST":
                return self._register(body or {})
            auth = headers.get("Authorization", "")
            if not auth.startswith("Bearer ") or auth[7:] not in self.valid_tokens():
                return 401, {"message": "Unauthorized"}
            return self._route(method, path, body)

    def _login(self, body: dict[str, Any]) -> tuple[int, Any]:
        account = self.accounts.get(body.get("email", ""))
        if account is None or account["password"] != body.get("password"):
            return 401, {"message": "Invalid credentials"}
        return 200, {"token": account["token"], "user": account["user"]}

    def _register(self, body: dict[str, Any]) -> tuple[int, Any]:
        email = body.get("email", "")
        if not email or email in self.accounts:
            return 400, {"message": "User already exists"}
        user = {"id": len(self.accounts) + 1, "name": body.get("name", ""), "email": email}
        token = f"T{len(self.accounts) + 1}"
        self.accounts[email] = {"password": body.get("password"), "token": token, "user": user}
        return 201, {"token": token, "user": user}

    def _route(self, method: str, path: str, body: Any) -> tuple[int, Any]:
        parts = [unquote(part) for part in path.strip("/").split("/")]
        if len(parts) < 2 or parts[0] != "api" or parts[1] not in COLLECTIONS:
            return 404, {"message": "Not found"}
        collection = parts[1]
        rows = self.records[collection]
        if len(parts) == 2:
            if method == "GET":
                return 200, [dict(row) for row in rows]
            if method == "POST":
                return 201, self._insert(collection, dict(body or {}))
            return 405, {"message": "Method not allowed"}
        if collection == "contacts" and len(parts) == 4 and parts[2] == "search":
            term = parts[3].lower()
            matches = [
                dict(row)
                for row in rows
                if any(term in str(row.get(key) or "").lower() for key in SEARCH_FIELDS)
            ]
            return 200, matches
        row = next((row for row in rows if str(row["id"]) == parts[2]), None)
        if row is None:
            return 404, {"message": f"{collection[:-1].capitalize()} not found"}
        if method == "PUT":
            row.update({key: value for key, value in (body or {}).items() if key != "id"})
            if collection == "deals":
                row["value"] = float(row.get("value") or 0)
            return 200, dict(row)
        if method == "DELETE":
            rows.remove(row)
            return 200, {"message": "deleted"}
        return 405, {"message": "Method not allowed"}


def _build_handler(api: FakeCrmApi) -> type[BaseHTTPRequestHandler]:
    class Handler(BaseHTTPRequestHandler):
        def _dispatch(self) -> None:
            length = int(self.headers.get("Content-Length") or 0)
            raw = self.rfile.read(length) if length else b""
            body = json.loads(raw.decode("utf-8")) if raw else None
            status, payload = api.handle(self.command, self.path, dict(self.headers), body)
            data = json.dumps(payload).encode("utf-8")
            self.send_response(status)
            self.send_header("Content-Type", "application/json; charset=utf-8")
            self.send_header("Content-Length", str(len(data)))
            self.end_headers()
            self.wfile.write(data)

        do_GET = _dispatch
        do_POST = _dispatch
        do_PUT = _dispatch
        do_DELETE = _dispatch

        def log_message(self, format: str, *args: Any) -> None:
            return

    return Handler


@pytest.fixture
def fake_api() -> Iterator[FakeCrmApi]:
    api = FakeCrmApi()
    server = ThreadingHTTPServer(("127.0.0.1", 0), _build_handler(api))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    api.url = f"http://127.0.0.1:{server.server_address[1]}"
    try:
        yield api
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture(autouse=True)
def _isolate_client_files(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CRM_CONFIG", str(tmp_path / "config.json"))
    monkeypatch.setenv("CRM_SESSION_FILE", str(tmp_path / "session.json"))
    for name in ("CRM_API_URL", "CRM_REQUEST_TIMEOUT_S", "CRM_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config(fake_api: FakeCrmApi, tmp_path: Path) -> CrmClientConfig:
    return CrmClientConfig(
        api_url=fake_api.url,
        session_path=str(tmp_path / "session.json"),
        request_timeout_s=5.0,
    )
