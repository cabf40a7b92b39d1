"""ttt CLI - trivial time tracker."""

import logging
import sys
from datetime import date, datetime, time, timedelta
from typing import NoReturn

import click

from .adapters.file_store import FileEntryStore
from .adapters.msgraph_auth import DeviceCode, DeviceCodeAuth
from .adapters.msgraph_calendar import GraphCalendarAdapter
from .config import DATA_DIR, TOKEN_FILE, Config, load_config
from .core.timecalc import duration_seconds, format_duration, format_elapsed, format_hhmmss
from .errors import AuthCancelledError, NoActiveTimerError, TTTError
from .sync import ERROR, IMPORTED, SKIPPED, UPDATED, sync_calendar
from .timer import start_timer, stop_timer, timer_status

DATE = click.DateTime(formats=["%Y-%m-%d"])


def get_store() -> FileEntryStore:
    return FileEntryStore(DATA_DIR)


def _fail(e: Exception, code: int = 1) -> NoReturn:
    click.echo(f"Error: {e}", err=True)
    sys.exit(code)


@click.group()
@click.version_option()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """ttt - trivial time tracker."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else logging.WARNING,
    )


@main.command()
@click.argument("project")
@click.option("--task", default="", help="Task description")
@click.option("--comment", default="", help="Optional comment")
@click.option("--tags", default="", help="Comma-separated tags")
def start(project: str, task: str, comment: str, tags: str):
    """Start a new time entry."""
    try:
        entry, stopped = start_timer(
            get_store(),
            project,
            task=task,
            comment=comment,
            tags=tags.split(",") if tags else [],
        )
    except TTTError as e:
        _fail(e, 2)

    if stopped:
        click.echo(f"Warning: auto-stopped active timer for project {stopped.project!r}", err=True)
    click.echo(f"Started timer for project {project!r} at {entry.start.strftime('%H:%M:%S')}")


@main.command()
@click.option("--comment", default="", help="Append a comment to the entry")
def stop(comment: str):
    """Stop the currently running timer."""
    now = datetime.now().astimezone()
    try:
        segments = stop_timer(get_store(), comment=comment or None, now=now)
    except NoActiveTimerError as e:
        _fail(e, 1)
    except TTTError as e:
        _fail(e, 2)

    first = segments[0]
    elapsed = duration_seconds(first.start, now)
    click.echo(f"Stopped timer for project {first.project!r}. Elapsed: {format_elapsed(elapsed)}")
    if len(segments) > 1:
        click.echo("  (split at midnight into two entries)")


@main.command()
def status():
    """Show current timer status."""
    try:
        current = timer_status(get_store())
    except TTTError as e:
        _fail(e, 2)

    if current.active:
        active = current.active
        click.echo("Running:")
        click.echo(f"  Project: {active.project}")
        if active.task:
            click.echo(f"  Task: {active.task}")
        click.echo(f"  Since: {active.start.strftime('%H:%M')}")
        click.echo(f"  Elapsed: {format_hhmmss(current.elapsed_seconds)}")
        return

    click.echo("No active timer.")
    click.echo(f"Today: {format_duration(current.today_seconds)} logged.")


@main.group()
def outlook():
    """Outlook calendar integration."""
    pass


def _show_device_code(device_code: DeviceCode) -> None:
    click.echo()
    click.echo("To sign in, use a web browser to open the page:")
    click.echo(f"  {device_code.verification_uri}")
    click.echo(f"Enter the code: {device_code.user_code}")
    click.echo()


def _make_auth(config: Config | None = None) -> DeviceCodeAuth:
    config = config or load_config()
    return DeviceCodeAuth(
        tenant_id=config.outlook.tenant_id,
        client_id=config.outlook.client_id,
        token_path=TOKEN_FILE,
        on_device_code=_show_device_code,
    )


def _sync_window(
    on_date: datetime | None,
    from_date: datetime | None,
    to_date: datetime | None,
    today: date,
) -> tuple[date, date]:
    """Resolve --date/--from/--to into an inclusive day range (default: today)."""
    if on_date:
        return on_date.date(), on_date.date()
    if from_date or to_date:
        if to_date and not from_date:
            raise click.UsageError("--from is required when --to is specified")
        first = from_date.date()
        last = to_date.date() if to_date else today
        if last < first:
            raise click.UsageError("--to must not be before --from")
        return first, last
    return today, today


@outlook.command("sync")
@click.option("--from", "from_date", type=DATE, default=None, help="Start date (YYYY-MM-DD)")
@click.option("--to", "to_date", type=DATE, default=None, help="End date (YYYY-MM-DD); defaults to today")
@click.option("--date", "on_date", type=DATE, default=None, help="Sync a specific date (YYYY-MM-DD)")
@click.option("--today", is_flag=True, help="Sync only today (default)")
@click.option("--dry-run", is_flag=True, help="Print planned operations without writing")
@click.option("--project", default=None, help="Project name for imported events")
@click.option("--timezone", "tz_name", default=None, help="IANA timezone for event times, e.g. Europe/Berlin")
def outlook_sync(from_date, to_date, on_date, today: bool, dry_run: bool, project, tz_name):
    """Sync Outlook calendar events into ttt entries."""
    try:
        config = load_config()
    except TTTError as e:
        _fail(e)

    project = project or config.outlook.default_project
    tz_name = config.outlook.timezone if tz_name is None else tz_name

    if today:
        first = last = date.today()
    else:
        first, last = _sync_window(on_date, from_date, to_date, date.today())
    start_at = datetime.combine(first, time.min).astimezone()
    end_at = datetime.combine(last + timedelta(days=1), time.min).astimezone()

    dry_tag = " [dry-run]" if dry_run else ""
    click.echo(f"Syncing Outlook events ({first} → {last}){dry_tag}...\n")

    calendar = GraphCalendarAdapter(_make_auth(config))
    try:
        result = sync_calendar(
            calendar,
            get_store(),
            start_at,
            end_at,
            project=project,
            tz_name=tz_name,
            dry_run=dry_run,
        )
    except AuthCancelledError:
        click.echo("\nAuthentication cancelled.", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nSync cancelled.", err=True)
        sys.exit(1)
    except TTTError as e:
        _fail(e)

    for outcome in result.outcomes:
        duration = ""
        if outcome.entry and outcome.entry.duration_seconds is not None:
            duration = f" ({format_duration(outcome.entry.duration_seconds)})"
        match outcome.action:
            case "imported":
                click.echo(f"  ✓ Imported: {outcome.subject}{duration}")
            case "updated":
                click.echo(f"  ↑ Updated:  {outcome.subject}{duration}")
            case "skipped":
                click.echo(f"  – Skipped:  {outcome.subject} (already exists)")
            case "error":
                click.echo(f"  ! Error:    {outcome.subject}: {outcome.error}")

    click.echo("\nSummary:")
    click.echo(f"  {result.imported} {IMPORTED}")
    click.echo(f"  {result.skipped} {SKIPPED}")
    click.echo(f"  {result.updated} {UPDATED}")
    if result.errors:
        click.echo(f"  {result.errors} {ERROR}s")
        sys.exit(2)


@outlook.command("login")
@click.option("--force", is_flag=True, help="Run the device code flow even with a valid token")
def outlook_login(force: bool):
    """Authenticate with Microsoft Graph."""
    try:
        auth = _make_auth()
        if force:
            auth.authenticate()
        else:
            auth.ensure_valid_token()
    except AuthCancelledError:
        click.echo("\nAuthentication cancelled.", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nAuthentication cancelled.", err=True)
        sys.exit(1)
    except TTTError as e:
        _fail(e)

    click.echo(f"✓ Authenticated. Token saved to {auth.token_path}")


@outlook.command("logout")
def outlook_logout():
    """Remove the saved Microsoft Graph token."""
    try:
        removed = _make_auth().logout()
    except TTTError as e:
        _fail(e)

    if removed:
        click.echo("Logged out.")
    else:
        click.echo("No saved token.")


if __name__ == "__main__":
    main()
