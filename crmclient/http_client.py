from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable
from decimal import Decimal
from http.client import HTTPConnection, HTTPException, HTTPSConnection
from typing import Any
from urllib.parse import urlparse

from .redaction import redact

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


def build_base_url(address: str) -> str:
    trimmed = address.strip().rstrip("/")
    if not trimmed:
        return ""
    parsed = urlparse(trimmed)
    if parsed.scheme:
        return trimmed
    return f"http://{trimmed}"


class ApiError(Exception):
    """A failed API call: an HTTP error status or a transport failure (status None)."""

    def __init__(
        self,
        status: int | None,
        payload: Any = None,
        *,
        method: str = "",
        path: str = "",
        reason: str | None = None,
    ) -> None:
        self.status = status
        self.payload = payload
        self.method = method
        self.path = path
        self.reason = reason
        super().__init__(self.message)

    @property
    def is_unauthorized(self) -> bool:
        return self.status == 401

    @property
    def message(self) -> str:
        if isinstance(self.payload, dict):
            for key in ("message", "error"):
                value = self.payload.get(key)
                if isinstance(value, str) and value.strip():
                    return value.strip()
        if self.status is None:
            return f"{self.method} {self.path} failed: {self.reason or 'connection error'}"
        return f"{self.method} {self.path} failed with status {self.status}"


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        if value.is_finite() and value == value.to_integral_value():
            return int(value)
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def request_json(
    method: str,
    url: str,
    *,
    headers: dict[str, str] | None = None,
    body: Any = None,
    body_bytes: bytes | None = None,
    timeout_s: float = 10.0,
) -> tuple[int, Any]:
    """Send one JSON request and return ``(status, payload)``.

    The payload is a dict, a list or ``None``. A non-JSON body comes back as
    an ``{"error": ...}`` dict. ``Decimal`` values in ``body`` are sent as
    numbers.
    """
    parsed = urlparse(url)
    if not parsed.hostname:
        raise ValueError("missing hostname")
    if parsed.scheme == "https":
        conn = HTTPSConnection(parsed.hostname, parsed.port or 443, timeout=timeout_s)
    else:
        conn = HTTPConnection(parsed.hostname, parsed.port or 80, timeout=timeout_s)
    path = parsed.path or "/"
    if parsed.query:
        path = f"{path}?{parsed.query}"
    payload = None
    if body_bytes is None and body is not None:
        body_bytes = json.dumps(body, ensure_ascii=False, default=_json_default).encode("utf-8")
    request_headers = {"Accept": "application/json"}
    if body_bytes is not None:
        request_headers["Content-Type"] = "application/json"
        request_headers["Content-Length"] = str(len(body_bytes))
    if headers:
        request_headers.update(headers)
    status: int | None = None
    try:
        conn.request(method, path, body=body_bytes, headers=request_headers)
        resp = conn.getresponse()
        status = int(resp.status)
        raw = resp.read()
        if raw:
            try:
                payload = json.loads(raw.decode("utf-8"))
            except json.JSONDecodeError:
                snippet = raw[:240].decode("utf-8", errors="replace").strip()
                payload = {
                    "error": f"non_json_response: {snippet}" if snippet else "non_json_response"
                }
    finally:
        conn.close()
    assert status is not None
    if payload is None or isinstance(payload, (dict, list)):
        return status, payload
    return status, {"error": f"unexpected_json_type: {type(payload).__name__}"}


class ApiClient:
    """The single outgoing request path for the CRM API.

    Holds one default-header slot for the bearer token. Only the session store
    writes it, through ``set_auth_token``/``clear_auth_token``. Every response
    with status 401 runs ``on_unauthorized`` before the error is raised, so
    session teardown applies to all callers the same way.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 10.0,
        on_unauthorized: Callable[[ApiError], None] | None = None,
    ) -> None:
        self.base_url = build_base_url(base_url)
        self.timeout_s = timeout_s
        self.on_unauthorized = on_unauthorized
        self._headers: dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def auth_header(self) -> str | None:
        with self._lock:
            return self._headers.get("Authorization")

    def set_auth_token(self, token: str) -> None:
        with self._lock:
            self._headers["Authorization"] = f"Bearer {token}"

    def clear_auth_token(self) -> None:
        with self._lock:
            self._headers.pop("Authorization", None)

    def get(self, path: str) -> Any:
        return self.request("GET", path)

    def post(self, path: str, body: Any = None) -> Any:
        return self.request("POST", path, body)

    def put(self, path: str, body: Any = None) -> Any:
        return self.request("PUT", path, body)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    def request(self, method: str, path: str, body: Any = None) -> Any:
        with self._lock:
            headers = dict(self._headers)
        url = f"{self.base_url}{path}"
        logger.debug("%s %s", method, path)
        try:
            status, payload = request_json(
                method, url, headers=headers, body=body, timeout_s=self.timeout_s
            )
        except (OSError, HTTPException, TypeError, ValueError) as exc:
            raise ApiError(None, method=method, path=path, reason=redact(str(exc))) from exc
        if status >= 400:
            error = ApiError(status, payload, method=method, path=path)
            if error.is_unauthorized:
                self._handle_unauthorized(error)
            raise error
        return payload

    def _handle_unauthorized(self, error: ApiError) -> None:
        hook = self.on_unauthorized
        if hook is None:
            return
        try:
            hook(error)
        except Exception:
            logger.exception("unauthorized hook failed for %s %s", error.method, error.path)
