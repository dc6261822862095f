from __future__ import annotations

from rich import print

from crmclient.commands.common import fail, read_config_or_exit, show, write_config_or_exit
from crmclient.config import get_config_path, load_config, set_config_value


def config_show_cmd() -> None:
    """Print the effective config and where it came from."""

    read_config_or_exit()
    cfg = load_config()
    print(f"Config file:     {show(get_config_path())}")
    print(f"API URL:         {show(cfg.api_url)}")
    print(f"Session file:    {show(cfg.session_path)}")
    print(f"Request timeout: {cfg.request_timeout_s}s")
    print(f"Log level:       {show(cfg.log_level or 'default')}")


def config_set_cmd(*, key: str, value: str) -> None:
    data = read_config_or_exit()
    try:
        updated = set_config_value(data, key, value)
    except ValueError as exc:
        fail(str(exc))
    write_config_or_exit(updated)
    if key in updated:
        print(f"[green]Set {show(key)}[/green]")
    else:
        print(f"[green]Cleared {show(key)}[/green]")
