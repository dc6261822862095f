from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Final

DEAL_STAGES: Final[tuple[str, ...]] = (
    "lead",
    "qualified",
    "proposal",
    "negotiation",
    "closed_won",
    "closed_lost",
)

DEAL_STAGE_LABELS: Final[dict[str, str]] = {
    "lead": "Lead",
    "qualified": "Qualified",
    "proposal": "Proposal",
    "negotiation": "Negotiation",
    "closed_won": "Closed Won",
    "closed_lost": "Closed Lost",
}

TASK_PRIORITIES: Final[tuple[str, ...]] = ("low", "medium", "high")
TASK_STATUSES: Final[tuple[str, ...]] = ("pending", "in_progress", "completed")
ACTIVITY_TYPES: Final[tuple[str, ...]] = ("call", "email", "meeting", "note")


def parse_timestamp(value: Any) -> dt.datetime | None:
    """Parse an ISO-8601 string from the API. Naive values are taken as UTC."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    try:
        parsed = dt.datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.UTC)
    return parsed


def parse_decimal(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        return Decimal(0)
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal(0)
    if not parsed.is_finite():
        return Decimal(0)
    return parsed


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def _opt_int(value: Any) -> int | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _split(data: dict[str, Any], known: tuple[str, ...]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if key not in known}


@dataclass(frozen=True)
class User:
    id: int | None
    name: str
    email: str | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    _FIELDS = ("id", "name", "email")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> User:
        return cls(
            id=_opt_int(data.get("id")),
            name=str(data.get("name") or ""),
            email=_opt_str(data.get("email")),
            extra=_split(data, cls._FIELDS),
        )

    def to_dict(self) -> dict[str, Any]:
        return {**self.extra, "id": self.id, "name": self.name, "email": self.email}


@dataclass(frozen=True)
class Contact:
    id: int
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    title: str | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    _FIELDS = ("id", "first_name", "last_name", "email", "phone", "company", "title")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Contact:
        return cls(
            id=int(data["id"]),
            first_name=str(data.get("first_name") or ""),
            last_name=str(data.get("last_name") or ""),
            email=_opt_str(data.get("email")),
            phone=_opt_str(data.get("phone")),
            company=_opt_str(data.get("company")),
            title=_opt_str(data.get("title")),
            extra=_split(data, cls._FIELDS),
        )


@dataclass(frozen=True)
class Deal:
    id: int
    title: str
    value: Decimal
    stage: str
    contact_id: int | None = None
    expected_close_date: str | None = None
    description: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    company: str | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    _FIELDS = (
        "id",
        "title",
        "value",
        "stage",
        "contact_id",
        "expected_close_date",
        "description",
        "first_name",
        "last_name",
        "company",
    )

    @property
    def contact_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Deal:
        stage = str(data.get("stage") or "")
        if stage not in DEAL_STAGES:
            raise ValueError(f"Invalid deal stage {stage!r}. Allowed: {', '.join(DEAL_STAGES)}")
        return cls(
            id=int(data["id"]),
            title=str(data.get("title") or ""),
            value=parse_decimal(data.get("value")),
            stage=stage,
            contact_id=_opt_int(data.get("contact_id")),
            expected_close_date=_opt_str(data.get("expected_close_date")),
            description=_opt_str(data.get("description")),
            first_name=_opt_str(data.get("first_name")),
            last_name=_opt_str(data.get("last_name")),
            company=_opt_str(data.get("company")),
            extra=_split(data, cls._FIELDS),
        )


@dataclass(frozen=True)
class Task:
    id: int
    title: str
    description: str | None = None
    due_date: str | None = None
    assigned_to: int | None = None
    priority: str = "medium"
    status: str = "pending"
    assigned_to_name: str | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    _FIELDS = (
        "id",
        "title",
        "description",
        "due_date",
        "assigned_to",
        "priority",
        "status",
        "assigned_to_name",
    )

    @property
    def due_at(self) -> dt.datetime | None:
        return parse_timestamp(self.due_date)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        return cls(
            id=int(data["id"]),
            title=str(data.get("title") or ""),
            description=_opt_str(data.get("description")),
            due_date=_opt_str(data.get("due_date")),
            assigned_to=_opt_int(data.get("assigned_to")),
            priority=str(data.get("priority") or "medium"),
            status=str(data.get("status") or "pending"),
            assigned_to_name=_opt_str(data.get("assigned_to_name")),
            extra=_split(data, cls._FIELDS),
        )


@dataclass(frozen=True)
class Activity:
    id: int
    type: str
    subject: str
    description: str | None = None
    contact_id: int | None = None
    deal_id: int | None = None
    duration: int | None = None
    scheduled_at: str | None = None
    created_at: str | None = None
    contact_first_name: str | None = None
    contact_last_name: str | None = None
    deal_title: str | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    _FIELDS = (
        "id",
        "type",
        "subject",
        "description",
        "contact_id",
        "deal_id",
        "duration",
        "scheduled_at",
        "created_at",
        "contact_first_name",
        "contact_last_name",
        "deal_title",
    )

    @property
    def created(self) -> dt.datetime | None:
        return parse_timestamp(self.created_at)

    @property
    def contact_name(self) -> str:
        return f"{self.contact_first_name or ''} {self.contact_last_name or ''}".strip()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Activity:
        return cls(
            id=int(data["id"]),
            type=str(data.get("type") or "note"),
            subject=str(data.get("subject") or ""),
            description=_opt_str(data.get("description")),
            contact_id=_opt_int(data.get("contact_id")),
            deal_id=_opt_int(data.get("deal_id")),
            duration=_opt_int(data.get("duration")),
            scheduled_at=_opt_str(data.get("scheduled_at")),
            created_at=_opt_str(data.get("created_at")),
            contact_first_name=_opt_str(data.get("contact_first_name")),
            contact_last_name=_opt_str(data.get("contact_last_name")),
            deal_title=_opt_str(data.get("deal_title")),
            extra=_split(data, cls._FIELDS),
        )
