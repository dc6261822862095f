"""Read-only projections over a controller's collection.

Every function here is pure and computes its result on demand from the
records plus explicit parameters (search term, view name, current time).
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Final

from .models import DEAL_STAGES, Activity, Contact, Deal, Task

TASK_VIEWS: Final[tuple[str, ...]] = ("all", "pending", "completed", "overdue")

_OLDEST = dt.datetime.min.replace(tzinfo=dt.UTC)


def filter_contacts(contacts: Iterable[Contact], term: str) -> list[Contact]:
    needle = term.lower()
    if not needle:
        return list(contacts)
    matches: list[Contact] = []
    for contact in contacts:
        fields = (contact.first_name, contact.last_name, contact.email, contact.company)
        if any(value and needle in value.lower() for value in fields):
            matches.append(contact)
    return matches


def group_by_stage(deals: Iterable[Deal]) -> dict[str, list[Deal]]:
    buckets: dict[str, list[Deal]] = {stage: [] for stage in DEAL_STAGES}
    for deal in deals:
        buckets[deal.stage].append(deal)
    return buckets


def pipeline_value(deals: Iterable[Deal]) -> Decimal:
    return sum((deal.value for deal in deals), Decimal(0))


def _now(now: dt.datetime | None = None) -> dt.datetime:
    if now is None:
        return dt.datetime.now(dt.UTC)
    if now.tzinfo is None:
        return now.replace(tzinfo=dt.UTC)
    return now


def is_overdue(task: Task, now: dt.datetime | None = None) -> bool:
    if task.status == "completed":
        return False
    due = task.due_at
    if due is None:
        return False
    return due < _now(now)


def filter_tasks(tasks: Iterable[Task], view: str, now: dt.datetime | None = None) -> list[Task]:
    if view not in TASK_VIEWS:
        raise ValueError(f"Invalid task view '{view}'. Allowed views: {', '.join(TASK_VIEWS)}")
    if view == "pending":
        return [task for task in tasks if task.status == "pending"]
    if view == "completed":
        return [task for task in tasks if task.status == "completed"]
    if view == "overdue":
        current = _now(now)
        return [task for task in tasks if is_overdue(task, current)]
    return list(tasks)


def recent_activities(activities: Sequence[Activity], limit: int = 5) -> list[Activity]:
    # sorted() is stable, so equal timestamps keep server order.
    ordered = sorted(activities, key=lambda item: item.created or _OLDEST, reverse=True)
    return ordered[:limit]
