from __future__ import annotations

from rich import print

from crmclient.commands.common import fail, open_session, show
from crmclient.commands.record_cmds import format_activity
from crmclient.dashboard import load_dashboard
from crmclient.redaction import redact


def dashboard_cmd() -> None:
    """Show totals and the most recent activities."""

    app = open_session()
    data = load_dashboard(app.client)
    if not app.session.is_authenticated:
        fail("Session ended while loading the dashboard")
    print(f"Total Contacts:   {data.total_contacts}")
    print(f"Active Deals:     {data.total_deals}")
    print(f"Open Tasks:       {data.total_tasks}")
    print(f"Total Deal Value: ${data.deal_value:,.2f}")
    print("[bold]Recent Activities[/bold]")
    if not data.recent_activities:
        print("  No recent activities")
    for activity in data.recent_activities:
        print(f"  {format_activity(activity)}")
    for name, message in sorted(data.errors.items()):
        print(f"[yellow]Could not load {name}: {show(redact(message))}[/yellow]")
