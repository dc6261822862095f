from __future__ import annotations

from rich import print

from crmclient.commands.common import fail, open_app, show
from crmclient.http_client import ApiError


def login_cmd(*, email: str, password: str) -> None:
    """Sign in and persist the session."""

    app = open_app()
    try:
        user = app.session.login(email, password)
    except ApiError:
        fail(app.session.error or "Login failed")
    print(f"[green]Signed in as {show(user.name or user.email or user.id)}[/green]")


def register_cmd(*, name: str, email: str, password: str) -> None:
    """Create an account and sign in with it."""

    app = open_app()
    try:
        user = app.session.register({"name": name, "email": email, "password": password})
    except ApiError:
        fail(app.session.error or "Registration failed")
    print(f"[green]Registered and signed in as {show(user.name or user.email)}[/green]")


def logout_cmd() -> None:
    app = open_app()
    was_signed_in = app.session.is_authenticated
    app.session.logout()
    if was_signed_in:
        print("[green]Signed out[/green]")
    else:
        print("Not signed in")


def whoami_cmd() -> None:
    app = open_app()
    user = app.session.user
    if user is None:
        print("Not signed in")
        return
    email = f" <{show(user.email)}>" if user.email else ""
    print(f"{show(user.name)}{email} (id {user.id}) via {show(app.config.api_url)}")
