from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar
from urllib.parse import quote

from .http_client import API_PREFIX, ApiClient, ApiError
from .models import Activity, Contact, Deal, Task

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ValidationError(ValueError):
    """Required fields are blank. Raised before any request is sent."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"Missing required fields: {', '.join(missing)}")


@dataclass(frozen=True)
class Outcome:
    ok: bool
    error: Exception | None = None

    @property
    def message(self) -> str | None:
        if self.error is None:
            return None
        if isinstance(self.error, ApiError):
            return self.error.message
        return str(self.error)


class ResourceController(Generic[T]):
    """Client-side mirror of one REST collection.

    ``items`` is only ever replaced wholesale by a successful fetch. Mutations
    never patch it; they refetch after the server accepts them. Errors are
    logged and returned as an ``Outcome``, never raised.
    """

    def __init__(
        self,
        client: ApiClient,
        path: str,
        parse: Callable[[dict[str, Any]], T],
        *,
        name: str | None = None,
    ) -> None:
        self.client = client
        self.path = path.rstrip("/")
        self.parse = parse
        self.name = name or self.path.rsplit("/", 1)[-1]
        self.items: list[T] = []
        self.error: str | None = None
        self.stale = False
        self.loaded = False

    def list(self) -> Outcome:
        return self._fetch(self.path)

    def create(self, draft: Mapping[str, Any]) -> Outcome:
        return self._mutate("create", lambda: self.client.post(self.path, dict(draft)))

    def update(self, record_id: int | str, patch: Mapping[str, Any]) -> Outcome:
        return self._mutate(
            "update", lambda: self.client.put(self._item_path(record_id), dict(patch))
        )

    def delete(self, record_id: int | str) -> Outcome:
        """Delete a record. Callers must have confirmed with the user first."""
        return self._mutate("delete", lambda: self.client.delete(self._item_path(record_id)))

    def find(self, record_id: int | str) -> T | None:
        for item in self.items:
            if str(getattr(item, "id", None)) == str(record_id):
                return item
        return None

    def _item_path(self, record_id: int | str) -> str:
        return f"{self.path}/{quote(str(record_id), safe='')}"

    def _fetch(self, path: str) -> Outcome:
        try:
            data = self.client.get(path)
            items = self._parse_collection(data)
        except (ApiError, KeyError, TypeError, ValueError) as exc:
            logger.warning("error fetching %s: %s", self.name, _describe(exc))
            self.error = _describe(exc)
            self.stale = self.loaded
            return Outcome(ok=False, error=exc)
        self.items = items
        self.error = None
        self.stale = False
        self.loaded = True
        return Outcome(ok=True)

    def _parse_collection(self, data: Any) -> list[T]:
        if not isinstance(data, list):
            raise ValueError(f"expected a list of {self.name}, got {type(data).__name__}")
        return [self.parse(row) for row in data]

    def _mutate(self, action: str, send: Callable[[], Any]) -> Outcome:
        try:
            send()
        except (ApiError, TypeError, ValueError) as exc:
            logger.warning("error on %s %s: %s", action, self.name, _describe(exc))
            self.error = _describe(exc)
            return Outcome(ok=False, error=exc)
        self.error = None
        self.list()
        return Outcome(ok=True)


class ContactsController(ResourceController[Contact]):
    def search(self, term: str) -> Outcome:
        """Server-side search. An empty term reloads the full collection."""
        cleaned = term.strip()
        if not cleaned:
            return self.list()
        return self._fetch(f"{self.path}/search/{quote(cleaned, safe='')}")


def _describe(exc: Exception) -> str:
    if isinstance(exc, ApiError):
        return exc.message
    return f"{type(exc).__name__}: {exc}"


def contacts(client: ApiClient) -> ContactsController:
    return ContactsController(client, f"{API_PREFIX}/contacts", Contact.from_dict)


def deals(client: ApiClient) -> ResourceController[Deal]:
    return ResourceController(client, f"{API_PREFIX}/deals", Deal.from_dict)


def tasks(client: ApiClient) -> ResourceController[Task]:
    return ResourceController(client, f"{API_PREFIX}/tasks", Task.from_dict)


def activities(client: ApiClient) -> ResourceController[Activity]:
    return ResourceController(client, f"{API_PREFIX}/activities", Activity.from_dict)
