from __future__ import annotations

import typer
from rich import print

from . import __version__
from .commands.auth_cmds import login_cmd, logout_cmd, register_cmd, whoami_cmd
from .commands.common import configure_logging
from .commands.config_cmds import config_set_cmd, config_show_cmd
from .commands.dashboard_cmds import dashboard_cmd
from .commands.record_cmds import (
    create_record_cmd,
    delete_record_cmd,
    list_activities_cmd,
    list_contacts_cmd,
    list_deals_cmd,
    list_tasks_cmd,
    pipeline_cmd,
    toggle_task_cmd,
    update_record_cmd,
)
from .models import ACTIVITY_TYPES, DEAL_STAGES, TASK_PRIORITIES, TASK_STATUSES
from .views import TASK_VIEWS

app = typer.Typer(help="crm: terminal client for the CRM API")
contacts_app = typer.Typer(help="Manage contacts")
deals_app = typer.Typer(help="Manage deals and the sales pipeline")
tasks_app = typer.Typer(help="Manage tasks")
activities_app = typer.Typer(help="Manage activities")
config_app = typer.Typer(help="Show or change client config")
app.add_typer(contacts_app, name="contacts")
app.add_typer(deals_app, name="deals")
app.add_typer(tasks_app, name="tasks")
app.add_typer(activities_app, name="activities")
app.add_typer(config_app, name="config")


def _choice(value: str | None, allowed: tuple[str, ...], name: str) -> str | None:
    if value is None or value in allowed:
        return value
    raise typer.BadParameter(f"must be one of: {', '.join(allowed)}", param_hint=name)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    configure_logging(verbose)


@app.command()
def login(
    email: str = typer.Option(..., prompt=True, help="Account email"),
    password: str = typer.Option(..., prompt=True, hide_input=True, help="Account password"),
) -> None:
    """Sign in and remember the session."""
    login_cmd(email=email, password=password)


@app.command()
def register(
    name: str = typer.Option(..., prompt=True, help="Display name"),
    email: str = typer.Option(..., prompt=True, help="Account email"),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True, help="Account password"
    ),
) -> None:
    """Create an account and sign in."""
    register_cmd(name=name, email=email, password=password)


@app.command()
def logout() -> None:
    """Forget the stored session."""
    logout_cmd()


@app.command()
def whoami() -> None:
    """Show the signed-in user."""
    whoami_cmd()


@app.command()
def dashboard() -> None:
    """Totals plus the five most recent activities."""
    dashboard_cmd()


@config_app.command("show")
def config_show() -> None:
    """Show the effective config."""
    config_show_cmd()


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="api_url, session_path, request_timeout_s or log_level"),
    value: str = typer.Argument(help="New value; an empty string clears the key"),
) -> None:
    """Persist a config value to the config file."""
    config_set_cmd(key=key, value=value)


@contacts_app.command("list")
def contacts_list(
    search: str = typer.Option("", "--search", "-s", help="Filter by name, email or company"),
    remote: bool = typer.Option(False, help="Search on the server instead of locally"),
) -> None:
    """List contacts."""
    list_contacts_cmd(search=search, remote=remote)


@contacts_app.command("add")
def contacts_add(
    first_name: str = typer.Option(..., help="First name"),
    last_name: str = typer.Option(..., help="Last name"),
    email: str = typer.Option(None, help="Email"),
    phone: str = typer.Option(None, help="Phone"),
    company: str = typer.Option(None, help="Company"),
    title: str = typer.Option(None, help="Job title"),
) -> None:
    """Create a contact."""
    create_record_cmd(
        "contact",
        {
            "first_name": first_name,
            "last_name": last_name,
            "email": email,
            "phone": phone,
            "company": company,
            "title": title,
        },
    )


@contacts_app.command("edit")
def contacts_edit(
    contact_id: int = typer.Argument(help="Contact id"),
    first_name: str = typer.Option(None, help="First name"),
    last_name: str = typer.Option(None, help="Last name"),
    email: str = typer.Option(None, help="Email"),
    phone: str = typer.Option(None, help="Phone"),
    company: str = typer.Option(None, help="Company"),
    title: str = typer.Option(None, help="Job title"),
) -> None:
    """Update a contact. Only the given options change."""
    update_record_cmd(
        "contact",
        contact_id,
        {
            "first_name": first_name,
            "last_name": last_name,
            "email": email,
            "phone": phone,
            "company": company,
            "title": title,
        },
    )


@contacts_app.command("delete")
def contacts_delete(
    contact_id: int = typer.Argument(help="Contact id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Delete a contact."""
    delete_record_cmd("contact", contact_id, yes=yes)


@deals_app.command("list")
def deals_list() -> None:
    """List deals."""
    list_deals_cmd()


@deals_app.command("pipeline")
def deals_pipeline() -> None:
    """Show deals grouped by stage."""
    pipeline_cmd()


@deals_app.command("add")
def deals_add(
    title: str = typer.Option(..., help="Deal title"),
    contact_id: int = typer.Option(..., help="Contact id"),
    value: str = typer.Option(None, help="Deal value"),
    stage: str = typer.Option("lead", help=f"One of: {', '.join(DEAL_STAGES)}"),
    expected_close_date: str = typer.Option(None, help="YYYY-MM-DD"),
    description: str = typer.Option(None, help="Description"),
) -> None:
    """Create a deal."""
    create_record_cmd(
        "deal",
        {
            "title": title,
            "contact_id": contact_id,
            "value": value,
            "stage": _choice(stage, DEAL_STAGES, "--stage"),
            "expected_close_date": expected_close_date,
            "description": description,
        },
    )


@deals_app.command("edit")
def deals_edit(
    deal_id: int = typer.Argument(help="Deal id"),
    title: str = typer.Option(None, help="Deal title"),
    contact_id: int = typer.Option(None, help="Contact id"),
    value: str = typer.Option(None, help="Deal value"),
    stage: str = typer.Option(None, help=f"One of: {', '.join(DEAL_STAGES)}"),
    expected_close_date: str = typer.Option(None, help="YYYY-MM-DD"),
    description: str = typer.Option(None, help="Description"),
) -> None:
    """Update a deal. Only the given options change."""
    update_record_cmd(
        "deal",
        deal_id,
        {
            "title": title,
            "contact_id": contact_id,
            "value": value,
            "stage": _choice(stage, DEAL_STAGES, "--stage"),
            "expected_close_date": expected_close_date,
            "description": description,
        },
    )


@deals_app.command("delete")
def deals_delete(
    deal_id: int = typer.Argument(help="Deal id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Delete a deal."""
    delete_record_cmd("deal", deal_id, yes=yes)


@tasks_app.command("list")
def tasks_list(
    view: str = typer.Option("all", help=f"One of: {', '.join(TASK_VIEWS)}"),
) -> None:
    """List tasks in one of the status views."""
    list_tasks_cmd(view=view)


@tasks_app.command("add")
def tasks_add(
    title: str = typer.Option(..., help="Task title"),
    description: str = typer.Option(None, help="Description"),
    due_date: str = typer.Option(None, help="YYYY-MM-DD"),
    assigned_to: int = typer.Option(None, help="User id (defaults to you)"),
    priority: str = typer.Option("medium", help=f"One of: {', '.join(TASK_PRIORITIES)}"),
    status: str = typer.Option("pending", help=f"One of: {', '.join(TASK_STATUSES)}"),
) -> None:
    """Create a task."""
    create_record_cmd(
        "task",
        {
            "title": title,
            "description": description,
            "due_date": due_date,
            "assigned_to": assigned_to,
            "priority": _choice(priority, TASK_PRIORITIES, "--priority"),
            "status": _choice(status, TASK_STATUSES, "--status"),
        },
    )


@tasks_app.command("edit")
def tasks_edit(
    task_id: int = typer.Argument(help="Task id"),
    title: str = typer.Option(None, help="Task title"),
    description: str = typer.Option(None, help="Description"),
    due_date: str = typer.Option(None, help="YYYY-MM-DD"),
    assigned_to: int = typer.Option(None, help="User id"),
    priority: str = typer.Option(None, help=f"One of: {', '.join(TASK_PRIORITIES)}"),
    status: str = typer.Option(None, help=f"One of: {', '.join(TASK_STATUSES)}"),
) -> None:
    """Update a task. Only the given options change."""
    update_record_cmd(
        "task",
        task_id,
        {
            "title": title,
            "description": description,
            "due_date": due_date,
            "assigned_to": assigned_to,
            "priority": _choice(priority, TASK_PRIORITIES, "--priority"),
            "status": _choice(status, TASK_STATUSES, "--status"),
        },
    )


@tasks_app.command("toggle")
def tasks_toggle(task_id: int = typer.Argument(help="Task id")) -> None:
    """Mark a task completed, or back to pending."""
    toggle_task_cmd(task_id)


@tasks_app.command("delete")
def tasks_delete(
    task_id: int = typer.Argument(help="Task id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Delete a task."""
    delete_record_cmd("task", task_id, yes=yes)


@activities_app.command("list")
def activities_list() -> None:
    """List activities."""
    list_activities_cmd()


@activities_app.command("add")
def activities_add(
    subject: str = typer.Option(..., help="Subject"),
    type_: str = typer.Option("call", "--type", help=f"One of: {', '.join(ACTIVITY_TYPES)}"),
    description: str = typer.Option(None, help="Description"),
    contact_id: int = typer.Option(None, help="Contact id"),
    deal_id: int = typer.Option(None, help="Deal id"),
    duration: int = typer.Option(None, help="Duration in minutes"),
    scheduled_at: str = typer.Option(None, help="YYYY-MM-DDTHH:MM"),
) -> None:
    """Log an activity."""
    create_record_cmd(
        "activity",
        {
            "type": _choice(type_, ACTIVITY_TYPES, "--type"),
            "subject": subject,
            "description": description,
            "contact_id": contact_id,
            "deal_id": deal_id,
            "duration": duration,
            "scheduled_at": scheduled_at,
        },
    )


@activities_app.command("edit")
def activities_edit(
    activity_id: int = typer.Argument(help="Activity id"),
    subject: str = typer.Option(None, help="Subject"),
    type_: str = typer.Option(None, "--type", help=f"One of: {', '.join(ACTIVITY_TYPES)}"),
    description: str = typer.Option(None, help="Description"),
    contact_id: int = typer.Option(None, help="Contact id"),
    deal_id: int = typer.Option(None, help="Deal id"),
    duration: int = typer.Option(None, help="Duration in minutes"),
    scheduled_at: str = typer.Option(None, help="YYYY-MM-DDTHH:MM"),
) -> None:
    """Update an activity. Only the given options change."""
    update_record_cmd(
        "activity",
        activity_id,
        {
            "type": _choice(type_, ACTIVITY_TYPES, "--type"),
            "subject": subject,
            "description": description,
            "contact_id": contact_id,
            "deal_id": deal_id,
            "duration": duration,
            "scheduled_at": scheduled_at,
        },
    )


@activities_app.command("delete")
def activities_delete(
    activity_id: int = typer.Argument(help="Activity id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Delete an activity."""
    delete_record_cmd("activity", activity_id, yes=yes)


def main() -> None:
    app()


@app.command("version")
def version() -> None:
    """Print version."""

    print(__version__)
