from __future__ import annotations

import logging
import os
from typing import Any, NoReturn

import typer
from rich import print
from rich.markup import escape

from crmclient.app import App, build_app
from crmclient.config import load_config, read_config_file, write_config_file
from crmclient.redaction import redact
from crmclient.resources import Outcome, ResourceController


def configure_logging(verbose: bool) -> None:
    if verbose:
        level = logging.DEBUG
    else:
        name = (os.environ.get("CRM_LOG_LEVEL") or "WARNING").upper()
        level = logging.getLevelName(name)
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def navigate_to_login(route: str) -> None:
    print(f"[yellow]Signed out: authentication required. Run `crm login` ({route}).[/yellow]")


def read_config_or_exit() -> dict[str, Any]:
    try:
        return read_config_file()
    except ValueError as exc:
        print(f"[red]Invalid config file: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def write_config_or_exit(data: dict[str, Any]) -> None:
    try:
        write_config_file(data)
    except OSError as exc:
        print(f"[red]Failed to write config: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def open_app() -> App:
    read_config_or_exit()
    return build_app(load_config(), navigate=navigate_to_login)


def open_session() -> App:
    app = open_app()
    if not app.session.is_authenticated:
        print("[red]Not signed in. Run `crm login` first.[/red]")
        raise typer.Exit(code=1)
    return app


def show(text: Any) -> str:
    return escape(str(text))


def fail(message: str) -> NoReturn:
    print(f"[red]{show(redact(message))}[/red]")
    raise typer.Exit(code=1)


def report_fetch(controller: ResourceController[Any], outcome: Outcome) -> None:
    if outcome.ok:
        return
    message = show(redact(outcome.message or "fetch failed"))
    if controller.loaded:
        print(f"[yellow]Showing stale {controller.name}: {message}[/yellow]")
        return
    print(f"[yellow]Could not load {controller.name}: {message}[/yellow]")


def finish_mutation(outcome: Outcome, done: str) -> None:
    if not outcome.ok:
        fail(outcome.message or "request failed")
    print(f"[green]{show(done)}[/green]")


def confirm_delete(kind: str, record_id: int, yes: bool) -> None:
    if yes:
        return
    if not typer.confirm(f"Are you sure you want to delete this {kind} ({record_id})?"):
        print("Aborted")
        raise typer.Exit(code=1)
