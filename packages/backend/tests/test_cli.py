"""CLI tests — commands run against a mocked HTTP transport."""

import json

import httpx
import pytest
from click.testing import CliRunner

from syncscript.cli import main as cli


@pytest.fixture()
def api(monkeypatch):
    """Route CLI HTTP calls to a handler; records every request."""
    calls = []
    routes = {}

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        status, body = routes[(request.method, request.url.path)]
        return httpx.Response(status, json=body)

    def fake_client(token=None):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        return httpx.AsyncClient(
            base_url="http://api.test",
            headers=headers,
            transport=httpx.MockTransport(handler),
        )

    monkeypatch.setattr(cli, "_client", fake_client)
    monkeypatch.delenv("SYNCSCRIPT_TOKEN", raising=False)

    class Api:
        pass

    a = Api()
    a.calls = calls
    a.routes = routes
    return a


SESSION = {"user": {"id": 1, "email": "ada@lab.org", "name": "Ada"}, "token": "tok-123"}


def test_login_prints_token(api):
    api.routes[("POST", "/auth/login")] = (200, {"success": True, "data": SESSION})
    result = CliRunner().invoke(cli.main, ["login", "ada@lab.org", "--password", "secret123"])
    assert result.exit_code == 0, result.output
    assert "export SYNCSCRIPT_TOKEN=tok-123" in result.output
    assert json.loads(api.calls[0].content) == {"email": "ada@lab.org", "password": "secret123"}


def test_register_prints_token(api):
    api.routes[("POST", "/auth/register")] = (201, {"success": True, "data": SESSION})
    result = CliRunner().invoke(cli.main, ["register", "ada@lab.org", "Ada", "--password", "secret123"])
    assert result.exit_code == 0, result.output
    assert "Registered ada@lab.org" in result.output
    assert json.loads(api.calls[0].content)["name"] == "Ada"


def test_api_error_exits_nonzero(api):
    api.routes[("POST", "/auth/login")] = (401, {"success": False, "error": "Invalid email or password"})
    result = CliRunner().invoke(cli.main, ["login", "ada@lab.org", "--password", "nope"])
    assert result.exit_code == 1
    assert "Invalid email or password" in result.output


def test_commands_require_token(api):
    result = CliRunner().invoke(cli.main, ["vaults"])
    assert result.exit_code == 1
    assert "--token required" in result.output
    assert api.calls == []


def test_vaults_lists_with_bearer_token(api):
    api.routes[("GET", "/vaults")] = (200, {
        "success": True,
        "data": [{"id": 3, "name": "Thesis", "role": "OWNER", "createdAt": "2026-01-01T00:00:00.000Z"}],
    })
    result = CliRunner().invoke(cli.main, ["vaults", "--token", "tok-123"])
    assert result.exit_code == 0, result.output
    assert "#3" in result.output
    assert "Thesis" in result.output
    assert api.calls[0].headers["Authorization"] == "Bearer tok-123"


def test_vaults_json_output(api):
    data = [{"id": 3, "name": "Thesis", "role": "OWNER"}]
    api.routes[("GET", "/vaults")] = (200, {"success": True, "data": data, "_cached": True})
    result = CliRunner().invoke(cli.main, ["vaults", "--json"], env={"SYNCSCRIPT_TOKEN": "tok-123"})
    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == data


def test_create_vault(api):
    api.routes[("POST", "/vaults")] = (201, {"success": True, "data": {"id": 7, "name": "Lab", "role": "OWNER"}})
    result = CliRunner().invoke(cli.main, ["create-vault", "Lab", "--token", "t"])
    assert result.exit_code == 0, result.output
    assert 'Vault #7 "Lab" created' in result.output


def test_add_source_note(api):
    api.routes[("POST", "/vaults/7/sources")] = (201, {"success": True, "data": {"id": 11, "type": "note"}})
    result = CliRunner().invoke(cli.main, ["add-source", "7", "Idea", "--note", "read more", "--token", "t"])
    assert result.exit_code == 0, result.output
    assert json.loads(api.calls[0].content) == {"title": "Idea", "type": "note", "content": "read more"}


def test_add_source_media_link(api):
    api.routes[("POST", "/vaults/7/sources")] = (201, {"success": True, "data": {"id": 12, "type": "media"}})
    result = CliRunner().invoke(
        cli.main, ["add-source", "7", "Talk", "--url", "https://youtu.be/x", "--media", "--token", "t"]
    )
    assert result.exit_code == 0, result.output
    assert json.loads(api.calls[0].content)["type"] == "media"


def test_add_source_file_is_multipart(api, tmp_path):
    f = tmp_path / "scan.png"
    f.write_bytes(b"\x89PNG")
    api.routes[("POST", "/vaults/7/sources")] = (201, {"success": True, "data": {"id": 13, "type": "image"}})
    result = CliRunner().invoke(cli.main, ["add-source", "7", "Scan", "--file", str(f), "--token", "t"])
    assert result.exit_code == 0, result.output
    request = api.calls[0]
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    assert b'name="type"\r\n\r\nimage' in request.content
    assert b'filename="scan.png"' in request.content


def test_add_source_needs_exactly_one_body(api):
    result = CliRunner().invoke(cli.main, ["add-source", "7", "X", "--token", "t"])
    assert result.exit_code == 2
    result = CliRunner().invoke(cli.main, ["add-source", "7", "X", "--url", "u", "--note", "n", "--token", "t"])
    assert result.exit_code == 2
    assert api.calls == []


def test_add_member_uppercases_role(api):
    api.routes[("POST", "/vaults/7/members")] = (201, {"success": True, "message": "User bob@lab.org added as VIEWER"})
    result = CliRunner().invoke(cli.main, ["add-member", "7", "bob@lab.org", "viewer", "--token", "t"])
    assert result.exit_code == 0, result.output
    assert "User bob@lab.org added as VIEWER" in result.output
    assert json.loads(api.calls[0].content) == {"email": "bob@lab.org", "role": "VIEWER"}


def test_members_and_audit(api):
    api.routes[("GET", "/vaults/7/members")] = (200, {"success": True, "data": [
        {"userId": 1, "name": "Ada", "email": "ada@lab.org", "role": "OWNER", "joinedAt": "x"},
    ]})
    api.routes[("GET", "/vaults/7/audit")] = (200, {"success": True, "data": [
        {"id": 1, "action": "VAULT_CREATED", "user": "Ada", "resourceType": "vault",
         "resourceId": 7, "metadata": None, "createdAt": "2026-01-01T00:00:00.000Z"},
    ]})
    runner = CliRunner()

    result = runner.invoke(cli.main, ["members", "7", "--token", "t"])
    assert result.exit_code == 0, result.output
    assert "ada@lab.org" in result.output

    result = runner.invoke(cli.main, ["audit", "7", "--token", "t"])
    assert result.exit_code == 0, result.output
    assert "VAULT_CREATED" in result.output
