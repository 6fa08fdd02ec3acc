"""Pivot Year CLI - a 365-day guided journal."""

import asyncio
import logging
import sys
from typing import Awaitable, Callable

import click

from .adapters.local_storage import FileLocalStorage
from .config import Config, load_config
from .context import build_context
from .core.entries import ENTRIES_KEY, LAST_DAY_KEY, decode_local_entries, is_valid_day, parse_last_day
from .core.prompts import DAYS_IN_YEAR, MONTHLY_THEMES, all_prompts, prompt_for_day, prompts_for_month
from .core.status import SaveStatus
from .entry_store import save_local_entry
from .errors import AuthError
from .journal import JournalSession

SIGN_IN_HINT = "Not signed in. Run 'pivotyear auth guest' or 'pivotyear auth login'."


def _local_storage(config: Config) -> FileLocalStorage:
    return FileLocalStorage(config.local_storage_path)


def _remembered_day(config: Config) -> int:
    return parse_last_day(_local_storage(config).get_item(LAST_DAY_KEY)) or 1


class NotSignedIn(Exception):
    pass


def _run_session(config: Config, action: Callable[[JournalSession], Awaitable]):
    """Start a synced session, run an action against it, then shut it down."""

    async def runner():
        context = build_context(config)
        session = JournalSession(context)
        try:
            await session.start()
            if session.user is None:
                raise NotSignedIn()
            await session.store.wait_until_loaded()
            return await action(session)
        finally:
            await session.close()
            context.close()

    try:
        return asyncio.run(runner())
    except NotSignedIn:
        click.echo(f"Error: {SIGN_IN_HINT}", err=True)
        sys.exit(1)


async def _sync_after_sign_in(session: JournalSession) -> None:
    await session.store.wait_for_migration()
    if session.store.read_local_entries():
        click.echo("Warning: local entries could not be uploaded yet; they are kept on this device.", err=True)


def _run_auth(config: Config, action: Callable, failure_message: str | None = None):
    """Run a sign-in action; on success, sync so device entries get migrated."""

    async def runner():
        context = build_context(config)
        session = JournalSession(context)
        try:
            await session.start()
            user = await action(context.identity)
            if user is not None:
                await session.store.wait_until_loaded()
                await _sync_after_sign_in(session)
            return user
        finally:
            await session.close()
            context.close()

    try:
        return asyncio.run(runner())
    except AuthError as e:
        click.echo(f"Error: {failure_message or e.user_message}", err=True)
        sys.exit(1)


@click.group()
@click.version_option()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """Pivot Year - 365-day companion journal."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else logging.WARNING,
    )


# ============== Auth ==============


@main.group()
def auth():
    """Sign in, sign up or sign out."""
    pass


@auth.command("guest")
def auth_guest():
    """Continue as a guest (anonymous account)."""
    user = _run_auth(
        load_config(),
        lambda identity: identity.sign_in_anonymously(),
        failure_message="Could not sign in as guest.",
    )
    click.echo(f"Signed in as guest. Your ID: {user.user_id}")


@auth.command("login")
@click.option("--email", prompt=True)
@click.option("--password", prompt=True, hide_input=True)
def auth_login(email: str, password: str):
    """Sign in with email and password."""
    user = _run_auth(load_config(), lambda identity: identity.sign_in_with_password(email, password))
    click.echo(f"Signed in as {user.email or email}")


@auth.command("signup")
@click.option("--email", prompt=True)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
def auth_signup(email: str, password: str):
    """Create an account with email and password."""
    user = _run_auth(load_config(), lambda identity: identity.create_account(email, password))
    click.echo(f"Account created for {user.email or email}")


@auth.command("logout")
def auth_logout():
    """Sign out."""

    async def runner():
        context = build_context(load_config())
        try:
            await context.identity.restore()
            await context.identity.sign_out()
        finally:
            context.close()

    asyncio.run(runner())
    click.echo("Signed out.")


@auth.command("whoami")
def auth_whoami():
    """Show the signed-in user."""

    async def runner():
        context = build_context(load_config())
        try:
            return await context.identity.restore()
        finally:
            context.close()

    user = asyncio.run(runner())
    if user is None:
        click.echo(SIGN_IN_HINT)
    elif user.is_anonymous:
        click.echo(f"Guest. Your ID: {user.user_id}")
    else:
        click.echo(f"{user.email} (ID: {user.user_id})")


# ============== Prompts ==============


@main.command()
@click.option("--day", "-d", type=int, default=None, help="Day 1-365 (defaults to the last viewed day)")
def prompt(day: int | None):
    """Show a day's prompt."""
    config = load_config()
    day = day if day is not None else _remembered_day(config)
    try:
        p = prompt_for_day(day)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"{p.theme.upper()} PHASE - Day {p.day}\n")
    click.echo(p.question)
    click.echo(f"\nTheme: {p.theme_desc}")


@main.command()
@click.option("--month", "-m", type=click.IntRange(1, len(MONTHLY_THEMES)), default=None,
              help="Only list one theme month (1-12)")
def prompts(month: int | None):
    """List the prompt catalog."""
    if month is None:
        for index, theme in enumerate(MONTHLY_THEMES):
            click.echo(f"{index + 1:2}. {theme.title} - {theme.description}")
        return

    for p in prompts_for_month(month - 1):
        click.echo(f"{p.day:3}  {p.question}")


# ============== Navigation ==============


def _move(target: Callable[[JournalSession], bool]) -> None:
    config = load_config()
    context = build_context(config)
    try:
        session = JournalSession(context)
        session.restore_last_day()
        if not target(session):
            click.echo(f"Already at day {session.current_day}.")
            return
        click.echo(f"Day {session.current_day}: {session.current_prompt.question}")
    finally:
        context.close()


@main.command()
@click.argument("day", type=int)
def goto(day: int):
    """Go to a day (1-365)."""
    if not is_valid_day(day):
        click.echo(f"Error: Day must be between 1 and {DAYS_IN_YEAR}", err=True)
        sys.exit(1)
    _move(lambda s: s.change_day(day))


@main.command("next")
def next_day():
    """Go to the next day."""
    _move(lambda s: s.next_day())


@main.command("prev")
def previous_day():
    """Go to the previous day."""
    _move(lambda s: s.previous_day())


# ============== Entries ==============


@main.command()
@click.option("--day", "-d", type=int, default=None, help="Day 1-365 (defaults to the last viewed day)")
def show(day: int | None):
    """Show a day's prompt and your entry."""
    config = load_config()
    day = day if day is not None else _remembered_day(config)
    if not is_valid_day(day):
        click.echo(f"Error: Day must be between 1 and {DAYS_IN_YEAR}", err=True)
        sys.exit(1)

    async def action(session: JournalSession):
        return session.entry(day), session.status

    text, status = _run_session(config, action)
    p = prompt_for_day(day)
    click.echo(f"--- DAY {p.day}: {p.theme.upper()} ---")
    click.echo(f"{p.question}\n")
    click.echo(text or "(No entry)")
    if status is SaveStatus.ERROR:
        click.echo(f"\n{status.label}", err=True)


def _read_text(text: str | None, existing: str) -> str | None:
    if text is not None:
        return text
    if not sys.stdin.isatty():
        return sys.stdin.read()
    return click.edit(existing)


@main.command()
@click.option("--day", "-d", type=int, default=None, help="Day 1-365 (defaults to the last viewed day)")
@click.argument("text", required=False)
def write(day: int | None, text: str | None):
    """Write a day's entry (argument, stdin or $EDITOR)."""
    config = load_config()
    day = day if day is not None else _remembered_day(config)
    if not is_valid_day(day):
        click.echo(f"Error: Day must be between 1 and {DAYS_IN_YEAR}", err=True)
        sys.exit(1)

    context = build_context(config)
    try:
        signed_in = asyncio.run(context.identity.restore()) is not None
    finally:
        context.close()

    if not signed_in:
        local = _local_storage(config)
        existing = (decode_local_entries(local.get_item(ENTRIES_KEY)) or {}).get(day, "")
        new_text = _read_text(text, existing)
        if new_text is None:
            click.echo("No changes.")
            return
        save_local_entry(local, day, new_text.rstrip("\n"))
        click.echo(f"Saved day {day} on this device. It will be uploaded after you sign in.")
        return

    async def action(session: JournalSession):
        session.change_day(day)
        new_text = _read_text(text, session.entry(day))
        if new_text is None:
            return None
        session.edit(new_text.rstrip("\n"))
        await session.autosave.wait_until_settled()
        return session.status

    status = _run_session(config, action)
    if status is None:
        click.echo("No changes.")
    elif status is SaveStatus.ERROR:
        click.echo(f"Error: {status.label} - day {day} was not saved.", err=True)
        sys.exit(1)
    else:
        click.echo(f"Day {day}: {status.label}")


@main.command()
def sync():
    """Load your entries and upload any kept on this device."""
    config = load_config()

    async def action(session: JournalSession):
        await _sync_after_sign_in(session)
        return session.days_written, session.status

    days, status = _run_session(config, action)
    if status is SaveStatus.ERROR:
        click.echo(f"Error: {status.label}", err=True)
        sys.exit(1)
    click.echo(f"{days} entries synced.")


@main.command()
def status():
    """Show who is signed in, the current day and progress."""
    config = load_config()

    async def action(session: JournalSession):
        return session.user, session.current_day, session.days_written, session.progress, session.status

    user, day, written, progress, save_status = _run_session(config, action)
    who = "Guest" if user.is_anonymous else user.email
    click.echo(f"User:     {who} ({user.user_id})")
    click.echo(f"Day:      {day} - {prompt_for_day(day).theme}")
    click.echo(f"Progress: {written}/{DAYS_IN_YEAR} days ({round(progress)}%)")
    click.echo(f"Sync:     {save_status.label}")


@main.command()
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None,
              help="Output file (default: my-pivot-year-journal.txt)")
def export(output: str | None):
    """Export the journal as plain text."""
    config = load_config()

    async def action(session: JournalSession):
        return session.export(output), session.days_written

    path, written = _run_session(config, action)
    click.echo(f"Exported {written} entries across {len(all_prompts())} days to {path}")


if __name__ == "__main__":
    main()
