"""SyncScript CLI — run the server and work with vaults from the terminal.

Usage:
    syncscript serve                                  # Run API + Socket.IO server
    syncscript register me@lab.org "Ada" secret123    # Create an account
    syncscript login me@lab.org secret123             # Print a token
    syncscript vaults                                 # List your vaults
    syncscript create-vault "Thesis"                  # New vault (you are OWNER)
    syncscript sources 3                              # List a vault's sources
    syncscript add-source 3 "Paper" --url https://…   # Add a link source
    syncscript add-source 3 "Scan" --file scan.pdf    # Upload a file source
    syncscript add-member 3 bob@lab.org VIEWER        # Invite a collaborator
    syncscript members 3                              # Who is in the vault
    syncscript audit 3                                # Owner-only audit log

Authenticated commands read the token from --token or SYNCSCRIPT_TOKEN.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import mimetypes
import os
import sys
from pathlib import Path
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:3000"


def _api_url() -> str:
    return os.environ.get("SYNCSCRIPT_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(token: Optional[str] = None) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the SyncScript backend."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _require_token(token: Optional[str]) -> str:
    tok = token or os.environ.get("SYNCSCRIPT_TOKEN")
    if not tok:
        click.secho(
            "Error: --token required (or set SYNCSCRIPT_TOKEN env var)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return tok


def _unwrap(r: httpx.Response):
    """Return the envelope's payload, or exit with the API's error message."""
    try:
        body = r.json()
    except ValueError:
        body = {}
    if r.status_code >= 400 or not body.get("success", False):
        message = body.get("error") or r.text or f"HTTP {r.status_code}"
        click.secho(f"Error ({r.status_code}): {message}", fg="red", err=True)
        sys.exit(1)
    return body.get("data", body.get("message"))


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(
            str(row.get(k) if row.get(k) is not None else "-")[:w].ljust(w)
            for _, k, w in columns
        )
        click.echo(line)


def _role_color(role: str) -> str:
    return {"OWNER": "green", "CONTRIBUTOR": "yellow", "VIEWER": "cyan"}.get(role, "white")


token_option = click.option("--token", envvar="SYNCSCRIPT_TOKEN", help="Bearer token (or SYNCSCRIPT_TOKEN)")
json_option = click.option("--json", "as_json", is_flag=True, help="Print raw JSON")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="syncscript", prog_name="syncscript")
def main():
    """SyncScript — collaborative research vaults."""


@main.command()
@click.option("--host", default=None, help="Bind address (default from settings)")
@click.option("--port", default=None, type=int, help="Port (default from settings)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API and Socket.IO server with uvicorn."""
    import uvicorn

    from syncscript.config import settings

    uvicorn.run(
        "syncscript.main:asgi_app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


@main.command()
@click.argument("email")
@click.argument("name")
@click.password_option()
def register(email: str, name: str, password: str):
    """Create an account and print its token."""
    async def _impl():
        async with _client() as c:
            r = await c.post("/auth/register", json={"email": email, "password": password, "name": name})
            return _unwrap(r)

    data = _run(_impl())
    click.secho(f"Registered {data['user']['email']} (id {data['user']['id']})", fg="green")
    click.echo(f"export SYNCSCRIPT_TOKEN={data['token']}")


@main.command()
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True)
def login(email: str, password: str):
    """Log in and print a token."""
    async def _impl():
        async with _client() as c:
            r = await c.post("/auth/login", json={"email": email, "password": password})
            return _unwrap(r)

    data = _run(_impl())
    click.secho(f"Logged in as {data['user']['name']}", fg="green")
    click.echo(f"export SYNCSCRIPT_TOKEN={data['token']}")


# ---------------------------------------------------------------------------
# Vaults
# ---------------------------------------------------------------------------


@main.command()
@token_option
@json_option
def vaults(token: Optional[str], as_json: bool):
    """List the vaults you belong to."""
    tok = _require_token(token)

    async def _impl():
        async with _client(tok) as c:
            return _unwrap(await c.get("/vaults"))

    data = _run(_impl())
    if as_json:
        click.echo(_pretty_json(data))
        return
    if not data:
        click.echo("No vaults yet. Create one with: syncscript create-vault NAME")
        return
    for v in data:
        role = click.style(v["role"], fg=_role_color(v["role"]))
        click.echo(f"  #{v['id']:<5} {v['name'][:40]:<40} {role}")


@main.command("create-vault")
@click.argument("name")
@token_option
def create_vault(name: str, token: Optional[str]):
    """Create a vault. You become its OWNER."""
    tok = _require_token(token)

    async def _impl():
        async with _client(tok) as c:
            return _unwrap(await c.post("/vaults", json={"name": name}))

    data = _run(_impl())
    click.secho(f"Vault #{data['id']} \"{data['name']}\" created", fg="green")


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


@main.command()
@click.argument("vault_id", type=int)
@token_option
@json_option
def sources(vault_id: int, token: Optional[str], as_json: bool):
    """List a vault's sources, newest first."""
    tok = _require_token(token)

    async def _impl():
        async with _client(tok) as c:
            return _unwrap(await c.get(f"/vaults/{vault_id}/sources"))

    data = _run(_impl())
    if as_json:
        click.echo(_pretty_json(data))
        return
    _print_table(
        data,
        [("ID", "id", 6), ("TYPE", "type", 6), ("TITLE", "title", 36), ("BY", "addedBy", 16), ("CONTENT", "content", 40)],
    )


@main.command("add-source")
@click.argument("vault_id", type=int)
@click.argument("title")
@click.option("--url", help="Link for url/media sources")
@click.option("--note", help="Text for a note source")
@click.option("--file", "file_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Upload a file (pdf, docx, pptx, txt, png, jpg)")
@click.option("--media", is_flag=True, help="Mark a link as media rather than a plain url")
@token_option
def add_source(vault_id: int, title: str, url: Optional[str], note: Optional[str],
               file_path: Optional[Path], media: bool, token: Optional[str]):
    """Add a link, note or file to a vault."""
    tok = _require_token(token)
    given = [x for x in (url, note, file_path) if x]
    if len(given) != 1:
        raise click.UsageError("Give exactly one of --url, --note or --file")

    async def _impl():
        async with _client(tok) as c:
            path = f"/vaults/{vault_id}/sources"
            if file_path is not None:
                mime = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
                kind = "image" if mime.startswith("image/") else "file"
                r = await c.post(
                    path,
                    data={"title": title, "type": kind},
                    files={"file": (file_path.name, file_path.read_bytes(), mime)},
                )
            elif note is not None:
                r = await c.post(path, json={"title": title, "type": "note", "content": note})
            else:
                r = await c.post(path, json={"title": title, "type": "media" if media else "url", "url": url})
            return _unwrap(r)

    data = _run(_impl())
    click.secho(f"Source #{data['id']} ({data['type']}) added to vault #{vault_id}", fg="green")


# ---------------------------------------------------------------------------
# Members & audit
# ---------------------------------------------------------------------------


@main.command("add-member")
@click.argument("vault_id", type=int)
@click.argument("email")
@click.argument("role", type=click.Choice(["CONTRIBUTOR", "VIEWER"], case_sensitive=False))
@token_option
def add_member(vault_id: int, email: str, role: str, token: Optional[str]):
    """Invite an existing user into a vault (owners only)."""
    tok = _require_token(token)

    async def _impl():
        async with _client(tok) as c:
            r = await c.post(f"/vaults/{vault_id}/members", json={"email": email, "role": role.upper()})
            return _unwrap(r)

    click.secho(_run(_impl()), fg="green")


@main.command()
@click.argument("vault_id", type=int)
@token_option
def members(vault_id: int, token: Optional[str]):
    """List a vault's members."""
    tok = _require_token(token)

    async def _impl():
        async with _client(tok) as c:
            return _unwrap(await c.get(f"/vaults/{vault_id}/members"))

    for m in _run(_impl()):
        role = click.style(m["role"], fg=_role_color(m["role"]))
        click.echo(f"  {m['name'][:24]:<24} {m['email'][:32]:<32} {role}")


@main.command()
@click.argument("vault_id", type=int)
@token_option
@json_option
def audit(vault_id: int, token: Optional[str], as_json: bool):
    """Show a vault's audit log (owners only)."""
    tok = _require_token(token)

    async def _impl():
        async with _client(tok) as c:
            return _unwrap(await c.get(f"/vaults/{vault_id}/audit"))

    data = _run(_impl())
    if as_json:
        click.echo(_pretty_json(data))
        return
    _print_table(
        data,
        [("WHEN", "createdAt", 24), ("ACTION", "action", 14), ("BY", "user", 16), ("RESOURCE", "resourceType", 8), ("ID", "resourceId", 6)],
    )


if __name__ == "__main__":
    main()
