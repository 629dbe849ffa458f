from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest
from typer.testing import CliRunner

from provisioner import main
from provisioner.main import app

runner = CliRunner()

CREDENTIALS = {"database": "db", "userName": "admin", "sessionId": "s-1"}


class FakePlatform:
    def __init__(self, fail_groups: bool = False, auth_error: str | None = None):
        self.fail_groups = fail_groups
        self.auth_error = auth_error
        self.methods: list[str] = []
        self.added: list[dict] = []
        self.next_id = 123

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content.decode("utf-8"))
        method = body["method"]
        params = body["params"]
        self.methods.append(method)
        if method == "Authenticate":
            if self.auth_error:
                return httpx.Response(
                    200, json={"error": {"message": "denied", "errors": [{"name": self.auth_error}]}}
                )
            return httpx.Response(200, json={"result": {"credentials": CREDENTIALS, "path": "ThisServer"}})
        if method == "Get" and params["typeName"] == "User":
            return httpx.Response(200, json={"result": [{"id": "u1", "name": "existing"}]})
        if method == "Get" and params["typeName"] == "Group":
            if self.fail_groups:
                return httpx.Response(500, text="group catalog down")
            if params.get("search") == {"id": "GroupSecurityId"}:
                return httpx.Response(200, json={"result": [{"id": "s1", "name": "**EverythingSecurity**"}]})
            return httpx.Response(
                200,
                json={"result": [{"id": "g1", "name": "Org A"}, {"id": "s1", "name": "**EverythingSecurity**"}]},
            )
        if method == "Add":
            self.added.append(params["entity"])
            new_id = f"b{self.next_id}"
            self.next_id += 1
            return httpx.Response(200, json={"result": new_id})
        return httpx.Response(404, text="unknown method")


@pytest.fixture
def platform(monkeypatch) -> FakePlatform:
    fake = FakePlatform()
    original = main.createApiClient

    def factory(settings, server, database, username, password, apiTransport=None):
        return original(settings, server, database, username, password, httpx.MockTransport(fake.handle))

    monkeypatch.setattr(main, "createApiClient", factory)
    return fake


def _csv(tmp_path: Path, text: str) -> str:
    path = tmp_path / "users.csv"
    path.write_text(text, encoding="utf-8")
    return str(path)


def _invoke(tmp_path: Path, csv_path: str):
    return runner.invoke(
        app,
        [
            "--log-dir",
            str(tmp_path / "logs"),
            "--run-id",
            "r1",
            "my.example.com",
            "db",
            "admin",
            "pw",
            csv_path,
        ],
    )


def _log_text(tmp_path: Path) -> str:
    return (tmp_path / "logs" / "import-users_r1.log").read_text(encoding="utf-8")


def test_no_arguments_prints_usage_and_exits_1():
    result = runner.invoke(app, [])

    assert result.exit_code == 1
    assert "Command line parameters:" in result.stdout
    assert "inputFileLocation" in result.stdout


def test_wrong_argument_count_exits_1(platform: FakePlatform):
    result = runner.invoke(app, ["my.example.com", "db", "admin"])

    assert result.exit_code == 1
    assert platform.methods == []


def test_single_valid_row_is_imported(tmp_path: Path, platform: FakePlatform):
    csv_path = _csv(tmp_path, "jdoe,secret,Org A,admin,John,Doe\n")

    result = _invoke(tmp_path, csv_path)

    assert result.exit_code == 0
    assert "password=***" in result.stdout
    assert platform.methods == ["Authenticate", "Get", "Get", "Get", "Add"]
    assert [e["name"] for e in platform.added] == ["jdoe"]
    log = _log_text(tmp_path)
    assert "User jdoe added with id b123." in log
    assert "Users imported." in log
    assert "secret" not in log


def test_duplicate_row_is_rejected(tmp_path: Path, platform: FakePlatform):
    csv_path = _csv(tmp_path, "jdoe,secret,Org A,admin,John,Doe\nJDOE,secret,Org A,admin,John,Doe\n")

    result = _invoke(tmp_path, csv_path)

    assert result.exit_code == 0
    assert len(platform.added) == 1
    assert "Invalid user: JDOE. Duplicate user." in _log_text(tmp_path)


def test_empty_security_field_is_rejected_and_run_continues(tmp_path: Path, platform: FakePlatform):
    csv_path = _csv(tmp_path, "nosec,secret,Org A,,No,Sec\njdoe,secret,Org A,admin,John,Doe\n")

    result = _invoke(tmp_path, csv_path)

    assert result.exit_code == 0
    assert [e["name"] for e in platform.added] == ["jdoe"]
    assert "Invalid user: nosec. Must have security nodes." in _log_text(tmp_path)


def test_group_catalog_failure_exits_1(tmp_path: Path, platform: FakePlatform):
    platform.fail_groups = True
    csv_path = _csv(tmp_path, "jdoe,secret,Org A,admin,John,Doe\n")

    result = _invoke(tmp_path, csv_path)

    assert result.exit_code == 1
    assert platform.added == []
    assert "Failed to import users: Failed to get existing groups" in _log_text(tmp_path)


def test_missing_csv_exits_1_before_network(tmp_path: Path, platform: FakePlatform):
    result = _invoke(tmp_path, str(tmp_path / "missing.csv"))

    assert result.exit_code == 1
    assert platform.methods == []
    assert "Failed to load csv file" in _log_text(tmp_path)


def test_invalid_user_exits_1(tmp_path: Path, platform: FakePlatform):
    platform.auth_error = "InvalidUserException"
    csv_path = _csv(tmp_path, "jdoe,secret,Org A,admin,John,Doe\n")

    result = _invoke(tmp_path, csv_path)

    assert result.exit_code == 1
    assert platform.methods == ["Authenticate"]
    assert "Invalid user: denied" in _log_text(tmp_path)


def test_invalid_config_exits_1(tmp_path: Path, platform: FakePlatform):
    cfg = tmp_path / "config.yml"
    cfg.write_text("unknown_key: 1\n", encoding="utf-8")
    csv_path = _csv(tmp_path, "jdoe,secret,Org A,admin,John,Doe\n")

    result = runner.invoke(app, ["--config", str(cfg), "my.example.com", "db", "admin", "pw", csv_path])

    assert result.exit_code == 1
    assert platform.methods == []


def test_password_starting_with_dash_stays_positional(tmp_path: Path, platform: FakePlatform, monkeypatch):
    csv_path = _csv(tmp_path, "jdoe,secret,Org A,admin,John,Doe\n")
    seen: list[dict] = []
    original = main.createApiClient

    def recording(settings, server, database, username, password, apiTransport=None):
        seen.append({"username": username, "password": password})
        return original(settings, server, database, username, password, apiTransport)

    monkeypatch.setattr(main, "createApiClient", recording)

    result = runner.invoke(
        app,
        ["--log-dir", str(tmp_path / "logs"), "--run-id", "r1", "my.example.com", "db", "admin", "-secret", csv_path],
    )

    assert result.exit_code == 0
    assert seen == [{"username": "admin", "password": "-secret"}]
    assert platform.methods == ["Authenticate", "Get", "Get", "Get", "Add"]
