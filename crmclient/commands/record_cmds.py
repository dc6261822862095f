from __future__ import annotations

import datetime as dt
from typing import Any

from rich import print

from crmclient import resources
from crmclient.commands.common import (
    confirm_delete,
    fail,
    finish_mutation,
    open_session,
    report_fetch,
    show,
)
from crmclient.forms import EditDialog
from crmclient.models import DEAL_STAGE_LABELS, Activity, Contact, Deal, Task
from crmclient.resources import ResourceController
from crmclient.views import (
    filter_contacts,
    filter_tasks,
    group_by_stage,
    is_overdue,
    pipeline_value,
)

CONTROLLERS = {
    "contact": resources.contacts,
    "deal": resources.deals,
    "task": resources.tasks,
    "activity": resources.activities,
}


def _money(value: Any) -> str:
    return f"${value:,.2f}"


def format_contact(contact: Contact) -> str:
    parts = [f"#{contact.id} {show(contact.full_name)}"]
    if contact.title or contact.company:
        parts.append(show(" @ ".join(p for p in (contact.title, contact.company) if p)))
    if contact.email:
        parts.append(show(contact.email))
    if contact.phone:
        parts.append(show(contact.phone))
    return " | ".join(parts)


def format_deal(deal: Deal) -> str:
    line = f"#{deal.id} {show(deal.title)} {_money(deal.value)}"
    if deal.contact_name:
        line += f" - {show(deal.contact_name)}"
    if deal.company:
        line += f" ({show(deal.company)})"
    return line


def format_task(task: Task, now: dt.datetime) -> str:
    mark = "[x]" if task.status == "completed" else "[ ]"
    line = f"{show(mark)} #{task.id} {show(task.title)} {show(f'[{task.priority}]')}"
    if task.due_date:
        due = task.due_date.split("T", 1)[0]
        line += f" due {show(due)}"
    if is_overdue(task, now):
        line += " [red]OVERDUE[/red]"
    if task.assigned_to_name:
        line += f" -> {show(task.assigned_to_name)}"
    return line


def format_activity(activity: Activity) -> str:
    line = f"#{activity.id} {show(activity.type.capitalize())}: {show(activity.subject)}"
    if activity.created_at:
        line += f" ({show(activity.created_at)})"
    if activity.contact_name:
        line += f" contact: {show(activity.contact_name)}"
    if activity.deal_title:
        line += f" deal: {show(activity.deal_title)}"
    return line


def _load(kind: str) -> ResourceController[Any]:
    app = open_session()
    controller = CONTROLLERS[kind](app.client)
    outcome = controller.list()
    if not outcome.ok and not app.session.is_authenticated:
        fail(outcome.message or "request failed")
    report_fetch(controller, outcome)
    return controller


def list_contacts_cmd(*, search: str, remote: bool) -> None:
    """List contacts, optionally filtered by a search term."""

    app = open_session()
    controller = resources.contacts(app.client)
    outcome = controller.search(search) if remote else controller.list()
    if not outcome.ok and not app.session.is_authenticated:
        fail(outcome.message or "request failed")
    report_fetch(controller, outcome)
    contacts = controller.items if remote else filter_contacts(controller.items, search)
    if not contacts:
        print("No contacts")
        return
    for contact in contacts:
        print(format_contact(contact))


def list_deals_cmd() -> None:
    controller = _load("deal")
    if not controller.items:
        print("No deals")
        return
    for deal in controller.items:
        print(f"{format_deal(deal)} {show(f'[{DEAL_STAGE_LABELS[deal.stage]}]')}")


def pipeline_cmd() -> None:
    """Show deals grouped by pipeline stage."""

    controller = _load("deal")
    for stage, deals in group_by_stage(controller.items).items():
        total = _money(pipeline_value(deals))
        print(f"[bold]{DEAL_STAGE_LABELS[stage]}[/bold] ({len(deals)}, {total})")
        for deal in deals:
            print(f"  {format_deal(deal)}")


def list_tasks_cmd(*, view: str) -> None:
    controller = _load("task")
    now = dt.datetime.now(dt.UTC)
    try:
        tasks = filter_tasks(controller.items, view, now)
    except ValueError as exc:
        fail(str(exc))
    if not tasks:
        print(f"No {view} tasks" if view != "all" else "No tasks")
        return
    for task in tasks:
        print(format_task(task, now))


def list_activities_cmd() -> None:
    controller = _load("activity")
    if not controller.items:
        print("No activities")
        return
    for activity in controller.items:
        print(format_activity(activity))


def create_record_cmd(kind: str, fields: dict[str, Any]) -> None:
    """Create a record from CLI options through the edit dialog."""

    app = open_session()
    controller = CONTROLLERS[kind](app.client)
    dialog = EditDialog(kind)
    if kind == "task" and not fields.get("assigned_to"):
        users = app.session.assignable_users()
        if users and users[0].id is not None:
            fields = {**fields, "assigned_to": users[0].id}
    dialog.open_create()
    dialog.update_fields(fields)
    outcome = dialog.submit(controller)
    finish_mutation(outcome, f"Created {kind}")


def update_record_cmd(kind: str, record_id: int, fields: dict[str, Any]) -> None:
    """Edit an existing record: load it, apply the changed options, submit."""

    controller = _load(kind)
    record = controller.find(record_id)
    if record is None:
        fail(f"No {kind} with id {record_id}")
    dialog = EditDialog(kind)
    dialog.open_edit(record)
    dialog.update_fields(fields)
    outcome = dialog.submit(controller)
    finish_mutation(outcome, f"Updated {kind} {record_id}")


def delete_record_cmd(kind: str, record_id: int, *, yes: bool) -> None:
    app = open_session()
    confirm_delete(kind, record_id, yes)
    controller = CONTROLLERS[kind](app.client)
    outcome = controller.delete(record_id)
    finish_mutation(outcome, f"Deleted {kind} {record_id}")


def toggle_task_cmd(task_id: int) -> None:
    """Flip a task between completed and pending."""

    controller = _load("task")
    task = controller.find(task_id)
    if task is None:
        fail(f"No task with id {task_id}")
    status = "pending" if task.status == "completed" else "completed"
    outcome = controller.update(task_id, {"status": status})
    finish_mutation(outcome, f"Task {task_id} marked {status}")
