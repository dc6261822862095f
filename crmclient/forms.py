from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass
from typing import Any, Final

from .models import parse_decimal, parse_timestamp
from .resources import Outcome, ResourceController, ValidationError

# Leading numeric prefix: "100abc" reads as 100, as a browser form would.
_LEADING_NUMBER = re.compile(r"\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

@dataclass(frozen=True)
class FormSpec:
    defaults: dict[str, str]
    required: tuple[str, ...]
    date_fields: tuple[str, ...] = ()
    datetime_fields: tuple[str, ...] = ()
    int_fields: tuple[str, ...] = ()
    number_fields: tuple[str, ...] = ()


FORM_SPECS: Final[dict[str, FormSpec]] = {
    "contact": FormSpec(
        defaults={
            "first_name": "",
            "last_name": "",
            "email": "",
            "phone": "",
            "company": "",
            "title": "",
        },
        required=("first_name", "last_name"),
    ),
    "deal": FormSpec(
        defaults={
            "title": "",
            "value": "",
            "contact_id": "",
            "stage": "lead",
            "expected_close_date": "",
            "description": "",
        },
        required=("title", "contact_id"),
        date_fields=("expected_close_date",),
        int_fields=("contact_id",),
        number_fields=("value",),
    ),
    "task": FormSpec(
        defaults={
            "title": "",
            "description": "",
            "due_date": "",
            "assigned_to": "",
            "priority": "medium",
            "status": "pending",
        },
        required=("title",),
        date_fields=("due_date",),
        int_fields=("assigned_to",),
    ),
    "activity": FormSpec(
        defaults={
            "type": "call",
            "subject": "",
            "description": "",
            "contact_id": "",
            "deal_id": "",
            "duration": "",
            "scheduled_at": "",
        },
        required=("type", "subject"),
        datetime_fields=("scheduled_at",),
        int_fields=("contact_id", "deal_id", "duration"),
    ),
}


def _form_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _date_text(value: Any) -> str:
    text = _form_text(value)
    return text.split("T", 1)[0]


def _datetime_text(value: Any) -> str:
    parsed = parse_timestamp(value)
    if parsed is None:
        return ""
    return parsed.astimezone(dt.UTC).strftime("%Y-%m-%dT%H:%M")


def _number(value: str) -> int | float:
    match = _LEADING_NUMBER.match(value)
    if match is None:
        return 0
    parsed = parse_decimal(match.group(0))
    if parsed == parsed.to_integral_value():
        return int(parsed)
    return float(parsed)


class EditDialog:
    """Draft state for one entity's create/edit dialog.

    The page owns this, not the controller. Opening for create resets the form
    to defaults. Opening for edit copies the selected record into the form.
    """

    def __init__(self, kind: str) -> None:
        if kind not in FORM_SPECS:
            raise ValueError(f"Unknown form kind '{kind}'. Allowed: {', '.join(FORM_SPECS)}")
        self.kind = kind
        self.spec = FORM_SPECS[kind]
        self.is_open = False
        self.selected: Any = None
        self.form: dict[str, str] = dict(self.spec.defaults)

    @property
    def is_edit(self) -> bool:
        return self.selected is not None

    def open_create(self) -> None:
        self.selected = None
        self.form = dict(self.spec.defaults)
        self.is_open = True

    def open_edit(self, record: Any) -> None:
        form: dict[str, str] = {}
        for name, default in self.spec.defaults.items():
            value = getattr(record, name, None)
            if name in self.spec.date_fields:
                form[name] = _date_text(value)
            elif name in self.spec.datetime_fields:
                form[name] = _datetime_text(value)
            elif value is None or value == "":
                form[name] = default
            else:
                form[name] = _form_text(value)
        self.selected = record
        self.form = form
        self.is_open = True

    def close(self) -> None:
        self.is_open = False
        self.selected = None

    def set_field(self, name: str, value: Any) -> None:
        if name not in self.form:
            raise KeyError(name)
        self.form[name] = _form_text(value)

    def update_fields(self, values: dict[str, Any]) -> None:
        for name, value in values.items():
            if value is not None:
                self.set_field(name, value)

    def missing_fields(self) -> list[str]:
        return [name for name in self.spec.required if not self.form.get(name, "").strip()]

    def payload(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        for name, raw in self.form.items():
            text = raw.strip()
            if name in self.spec.number_fields:
                body[name] = _number(text)
            elif not text:
                body[name] = None
            elif name in self.spec.int_fields:
                body[name] = int(text) if text.lstrip("-").isdigit() else text
            else:
                body[name] = text
        return body

    def submit(self, controller: ResourceController[Any]) -> Outcome:
        """Send the draft. The dialog closes on success and stays open on failure."""
        missing = self.missing_fields()
        if missing:
            return Outcome(ok=False, error=ValidationError(missing))
        payload = self.payload()
        if self.selected is not None:
            outcome = controller.update(self.selected.id, payload)
        else:
            outcome = controller.create(payload)
        if outcome.ok:
            self.close()
        return outcome
