"""Strengths CLI — sign in, keep a capability list, edit the community vocabulary.

Usage:
    strengths serve                                   # Run the API server
    strengths register alice@example.com --name Alice # Create an account
    strengths login alice@example.com                 # Sign in (session saved to disk)
    strengths whoami                                  # Current account
    strengths entries add "User interviews" "Prototyping"
    strengths entries list
    strengths community add "Product Design" "User Interviewing"
    strengths community rename-category "Design" "Engineering"
    strengths logout

Signed out, `entries add` works in guest mode: the list is kept in memory
for this one invocation and nothing is saved.
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from typing import Optional

import click
import httpx

from strengths import __version__
from strengths.client import (
    ApiError,
    FileSessionStore,
    SessionContext,
    StrengthsClient,
)

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"
DEFAULT_SESSION_FILE = "~/.strengths/session.json"


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
        line = "  ".join(str(row.get(k) if row.get(k) is not None else "—")[:w].ljust(w)
                         for _, k, w in columns)
        click.echo(line)


def _fail(message: str):
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


def _run(ctx: click.Context, action):
    """Build a client from the group options and run one async action with it."""
    opts = ctx.obj

    async def runner():
        session = SessionContext(FileSessionStore(opts["session_file"]))
        async with StrengthsClient(opts["api_url"], session) as client:
            await client.restore_session()
            return await action(client)

    try:
        return asyncio.run(runner())
    except ApiError as e:
        _fail(str(e.detail))
    except httpx.TransportError as e:
        _fail(f"cannot reach {opts['api_url']} ({type(e).__name__})")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="strengths")
@click.option("--api-url", envvar="STRENGTHS_API_URL", default=DEFAULT_API_URL,
              show_default=True, help="Base URL of the Strengths API")
@click.option("--session-file", envvar="STRENGTHS_SESSION_FILE",
              default=DEFAULT_SESSION_FILE, show_default=True,
              help="Where the signed-in session is stored")
@click.pass_context
def main(ctx: click.Context, api_url: str, session_file: str):
    """Strengths — capability lists and the shared community vocabulary."""
    ctx.obj = {"api_url": api_url.rstrip("/"), "session_file": os.path.expanduser(session_file)}


@main.command()
@click.option("--host", default=None, help="Bind address (default from settings)")
@click.option("--port", default=None, type=int, help="Port (default from settings)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server with uvicorn."""
    import uvicorn

    from strengths.config import settings

    uvicorn.run(
        "strengths.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# Account commands
# ---------------------------------------------------------------------------


@main.command()
@click.argument("email")
@click.option("--name", prompt=True, help="Display name")
@click.password_option()
@click.pass_context
def register(ctx: click.Context, email: str, name: str, password: str):
    """Create an account and sign in."""
    account = _run(ctx, lambda c: c.register(email, password, name))
    click.secho(f"Registered and signed in as {account['name']} <{account['email']}>", fg="green")


@main.command()
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True)
@click.pass_context
def login(ctx: click.Context, email: str, password: str):
    """Sign in with email and password."""
    account = _run(ctx, lambda c: c.login(email, password))
    click.secho(f"Signed in as {account['name']} <{account['email']}>", fg="green")


@main.command()
@click.pass_context
def logout(ctx: click.Context):
    """Forget the saved session on this machine."""
    session = SessionContext(FileSessionStore(ctx.obj["session_file"]))
    session.sign_out()
    click.echo("Signed out.")


@main.command()
@click.pass_context
def whoami(ctx: click.Context):
    """Show the signed-in account."""

    async def action(c: StrengthsClient):
        if not c.session.is_authenticated:
            return None
        return await c.me()

    account = _run(ctx, action)
    if account is None:
        click.echo("Not signed in (guest).")
    else:
        click.echo(_pretty_json(account))


@main.command("delete-account")
@click.confirmation_option(prompt="Delete your account and every saved entry?")
@click.pass_context
def delete_account(ctx: click.Context):
    """Permanently delete the signed-in account and its entries."""

    async def action(c: StrengthsClient):
        if not c.session.is_authenticated:
            _fail("not signed in")
        return await c.delete_account()

    data = _run(ctx, action)
    click.secho(f"Account deleted ({data.get('entries_removed', 0)} entries removed).", fg="green")


# ---------------------------------------------------------------------------
# Personal entries
# ---------------------------------------------------------------------------


@main.group()
def entries():
    """Your personal capability list."""


@entries.command("list")
@click.pass_context
def entries_list(ctx: click.Context):
    rows = _run(ctx, lambda c: c.list_entries())
    if not rows:
        click.echo("No entries.")
        return
    _print_table(rows, [("ID", "id", 6), ("CAPABILITY", "content", 60)])


@entries.command("add")
@click.argument("items", nargs=-1, required=True)
@click.pass_context
def entries_add(ctx: click.Context, items: tuple[str, ...]):
    """Add capabilities; anything already on the list is skipped."""

    async def action(c: StrengthsClient):
        return c.session.is_authenticated, await c.save_capabilities(items)

    signed_in, result = _run(ctx, action)
    for item in result.added:
        click.secho(f"+ {item}", fg="green")
    for item in result.skipped:
        click.echo(f"= {item} (already listed)")
    if result.notice:
        click.secho(result.notice, fg="yellow")
    if not signed_in:
        click.secho("Guest mode: this list is not saved. Sign in to keep it.", fg="yellow")


@entries.command("remove")
@click.argument("entry_id", type=int)
@click.pass_context
def entries_remove(ctx: click.Context, entry_id: int):
    _run(ctx, lambda c: c.delete_entry(entry_id))
    click.echo(f"Entry {entry_id} removed.")


# ---------------------------------------------------------------------------
# Community vocabulary
# ---------------------------------------------------------------------------


@main.group()
def community():
    """The shared category/capability list."""


@community.command("list")
@click.pass_context
def community_list(ctx: click.Context):
    rows = _run(ctx, lambda c: c.community_entries())
    if not rows:
        click.echo("No community entries.")
        return
    _print_table(
        rows,
        [("ID", "id", 6), ("CATEGORY", "category", 30), ("CAPABILITY", "capability", 40)],
    )


@community.command("add")
@click.argument("category")
@click.argument("capability")
@click.pass_context
def community_add(ctx: click.Context, category: str, capability: str):
    data = _run(ctx, lambda c: c.submit_community_entry(category, capability))
    entry = data["entry"]
    label = f"{entry['category']} / {entry['capability']}"
    if data["created"]:
        click.secho(f"Added {label}", fg="green")
    else:
        click.echo(f"Already present: {label}")


@community.command("rename-category")
@click.argument("old_category")
@click.argument("new_category")
@click.pass_context
def community_rename_category(ctx: click.Context, old_category: str, new_category: str):
    data = _run(ctx, lambda c: c.rename_category(old_category, new_category))
    verb = "Merged into" if data["merged"] else "Renamed to"
    click.echo(
        f"{verb} {data['category']}: {data['moved']} moved, {data['removed']} duplicates removed"
    )


if __name__ == "__main__":
    main()
