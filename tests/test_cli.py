import json
from pathlib import Path

from typer.testing import CliRunner

from crmclient.cli import app
from crmclient.session_file import SessionFile

runner = CliRunner()


def _env(fake_api) -> dict[str, str]:
    return {"CRM_API_URL": fake_api.url}


def _sign_in(tmp_path: Path) -> None:
    SessionFile(tmp_path / "session.json").save("T1", {"id": 1, "name": "A"})


def test_root_help_lists_resource_groups() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for name in ("login", "logout", "contacts", "deals", "tasks", "activities", "dashboard"):
        assert name in result.stdout


def test_tasks_help_shows_toggle() -> None:
    result = runner.invoke(app, ["tasks", "--help"])
    assert result.exit_code == 0
    assert "toggle" in result.stdout


def test_login_writes_session_file(fake_api, tmp_path: Path) -> None:
    result = runner.invoke(
        app, ["login", "--email", "a@b.com", "--password", "x"], env=_env(fake_api)
    )

    assert result.exit_code == 0
    assert "Signed in as A" in result.stdout
    data = json.loads((tmp_path / "session.json").read_text())
    assert data["token"] == "T1"


def test_login_failure_exits_with_message(fake_api, tmp_path: Path) -> None:
    result = runner.invoke(
        app, ["login", "--email", "a@b.com", "--password", "bad"], env=_env(fake_api)
    )

    assert result.exit_code == 1
    assert "Invalid credentials" in result.stdout
    assert not (tmp_path / "session.json").exists()


def test_whoami_and_logout(fake_api, tmp_path: Path) -> None:
    _sign_in(tmp_path)

    result = runner.invoke(app, ["whoami"], env=_env(fake_api))
    assert result.exit_code == 0
    assert "A" in result.stdout

    result = runner.invoke(app, ["logout"], env=_env(fake_api))
    assert result.exit_code == 0
    assert "Signed out" in result.stdout
    assert not (tmp_path / "session.json").exists()

    result = runner.invoke(app, ["whoami"], env=_env(fake_api))
    assert "Not signed in" in result.stdout


def test_commands_require_a_session(fake_api) -> None:
    result = runner.invoke(app, ["contacts", "list"], env=_env(fake_api))
    assert result.exit_code == 1
    assert "crm login" in result.stdout


def test_contacts_list_filters_locally(fake_api, tmp_path: Path) -> None:
    _sign_in(tmp_path)
    fake_api.seed("contacts", first_name="Ada", last_name="Lovelace", company="Engines")
    fake_api.seed("contacts", first_name="Grace", last_name="Hopper", company="Navy")

    result = runner.invoke(app, ["contacts", "list", "--search", "NAVY"], env=_env(fake_api))

    assert result.exit_code == 0
    assert "Grace Hopper" in result.stdout
    assert "Ada" not in result.stdout


def test_contacts_add_validates_and_creates(fake_api, tmp_path: Path) -> None:
    _sign_in(tmp_path)

    result = runner.invoke(
        app,
        ["contacts", "add", "--first-name", "Ada", "--last-name", "Lovelace", "--company", "AE"],
        env=_env(fake_api),
    )

    assert result.exit_code == 0
    assert "Created contact" in result.stdout
    assert fake_api.records["contacts"][0]["company"] == "AE"


def test_deals_pipeline_groups_by_stage(fake_api, tmp_path: Path) -> None:
    _sign_in(tmp_path)
    fake_api.seed("deals", title="Alpha", stage="lead", value=100)
    fake_api.seed("deals", title="Beta", stage="closed_won", value=50)

    result = runner.invoke(app, ["deals", "pipeline"], env=_env(fake_api))

    assert result.exit_code == 0
    out = result.stdout
    assert out.index("Lead") < out.index("Alpha") < out.index("Closed Won") < out.index("Beta")


def test_tasks_list_overdue_view(fake_api, tmp_path: Path) -> None:
    _sign_in(tmp_path)
    fake_api.seed("tasks", title="Late", status="pending", due_date="2000-01-01")
    fake_api.seed("tasks", title="Done", status="completed", due_date="2000-01-01")

    result = runner.invoke(app, ["tasks", "list", "--view", "overdue"], env=_env(fake_api))

    assert result.exit_code == 0
    assert "Late" in result.stdout
    assert "OVERDUE" in result.stdout
    assert "Done" not in result.stdout


def test_tasks_toggle_flips_status(fake_api, tmp_path: Path) -> None:
    _sign_in(tmp_path)
    row = fake_api.seed("tasks", title="Ship", status="pending")

    result = runner.invoke(app, ["tasks", "toggle", str(row["id"])], env=_env(fake_api))

    assert result.exit_code == 0
    assert fake_api.records["tasks"][0]["status"] == "completed"


def test_delete_asks_for_confirmation(fake_api, tmp_path: Path) -> None:
    _sign_in(tmp_path)
    row = fake_api.seed("contacts", first_name="Ada", last_name="Lovelace")

    result = runner.invoke(
        app, ["contacts", "delete", str(row["id"])], input="n\n", env=_env(fake_api)
    )
    assert result.exit_code == 1
    assert len(fake_api.records["contacts"]) == 1

    result = runner.invoke(app, ["contacts", "delete", str(row["id"]), "--yes"], env=_env(fake_api))
    assert result.exit_code == 0
    assert fake_api.records["contacts"] == []


def test_delete_missing_record_fails(fake_api, tmp_path: Path) -> None:
    _sign_in(tmp_path)

    result = runner.invoke(app, ["tasks", "delete", "999", "--yes"], env=_env(fake_api))

    assert result.exit_code == 1
    assert "Task not found" in result.stdout


def test_expired_token_signs_out(fake_api, tmp_path: Path) -> None:
    SessionFile(tmp_path / "session.json").save("stale-token", {"id": 1, "name": "A"})

    result = runner.invoke(app, ["deals", "list"], env=_env(fake_api))

    assert result.exit_code == 1
    assert "crm login" in result.stdout
    assert not (tmp_path / "session.json").exists()


def test_dashboard_prints_totals(fake_api, tmp_path: Path) -> None:
    _sign_in(tmp_path)
    fake_api.seed("contacts", first_name="Ada", last_name="Lovelace")
    fake_api.seed("deals", title="Alpha", stage="lead", value=1200)
    fake_api.seed("activities", type="call", subject="Intro call")

    result = runner.invoke(app, ["dashboard"], env=_env(fake_api))

    assert result.exit_code == 0
    assert "Total Contacts:   1" in result.stdout
    assert "$1,200.00" in result.stdout
    assert "Intro call" in result.stdout


def test_config_set_then_show(tmp_path: Path) -> None:
    result = runner.invoke(app, ["config", "set", "api_url", "http://crm.example:5001"])
    assert result.exit_code == 0
    assert json.loads((tmp_path / "config.json").read_text()) == {
        "api_url": "http://crm.example:5001"
    }

    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0
    assert "http://crm.example:5001" in result.stdout


def test_config_set_rejects_unknown_key(tmp_path: Path) -> None:
    result = runner.invoke(app, ["config", "set", "colour", "blue"])
    assert result.exit_code == 1
    assert "unknown config key" in result.stdout
    assert not (tmp_path / "config.json").exists()


def test_invalid_config_file_exits(tmp_path: Path) -> None:
    (tmp_path / "config.json").write_text("{not-json}")
    result = runner.invoke(app, ["whoami"])
    assert result.exit_code == 1
    assert "Invalid config file" in result.stdout
