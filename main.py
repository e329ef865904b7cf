#!/usr/bin/env python3
"""
UserFeed - Scheduled Per-User RSS Importer
==========================================

Main application entry point with CLI interface for management.

Usage:
    python main.py --help                       # Show all commands
    python main.py check-config                 # Validate configuration
    python main.py init-db                      # Initialize database
    python main.py add-owner 7 "Jane" -r author # Create a feed owner
    python main.py set-feed 7 https://x/feed    # Set an owner's feed
    python main.py set-interval 6               # Change the import interval
    python main.py import-now 7                 # Run one import synchronously
    python main.py status                       # Show import status
    python main.py serve                        # Run the scheduler
"""

import sys
import time
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from userfeed.config.settings import get_settings
from userfeed.database.models import Owner, PostStatus
from userfeed.database.schema import DatabaseSchema
from userfeed.utils.logging import configure_application_logging
from userfeed.utils.exceptions import SchedulingError, UserFeedError, get_user_friendly_message

console = Console()
logger = logging.getLogger(__name__)


def _build_app(ctx):
    from userfeed.services.lifecycle import UserFeedApp

    settings = get_settings()
    configure_application_logging(
        settings.logging,
        level="DEBUG" if ctx.obj.get("debug") else settings.get_effective_log_level(),
    )
    return UserFeedApp(settings)


def _fail(error: Exception) -> None:
    console.print(f"[bold red]❌ {get_user_friendly_message(error)}[/bold red]")
    if isinstance(error, UserFeedError) and error.user_message != str(error):
        console.print(f"[dim]{error}[/dim]")
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.pass_context
def cli(ctx, debug):
    """UserFeed - scheduled per-user RSS importer."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
def check_config():
    """Validate configuration and environment variables."""
    console.print("[bold blue]🔧 Checking UserFeed Configuration[/bold blue]")

    try:
        settings = get_settings()
    except UserFeedError as e:
        _fail(e)

    table = Table(title="Configuration Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Details")

    checks = [
        ("Database", _check_database_config),
        ("Logging", _check_logging_config),
        ("Scheduler", _check_scheduler_config),
        ("Security", _check_security_config),
    ]

    all_passed = True
    for name, check_func in checks:
        status, details = check_func(settings)
        table.add_row(name, "✅ Valid" if status else "❌ Invalid", details)
        all_passed = all_passed and status

    console.print(table)

    if all_passed:
        console.print("[bold green]✅ All configuration checks passed![/bold green]")
    else:
        console.print("[bold red]❌ Configuration validation failed[/bold red]")
        sys.exit(1)


@cli.command()
def init_db():
    """Create the database schema."""
    settings = get_settings()
    schema = DatabaseSchema(settings.database.path)
    schema.create_tables()

    if schema.verify_schema():
        console.print(f"[bold green]✅ Database ready at {settings.database.path}[/bold green]")
    else:
        console.print("[bold red]❌ Database schema verification failed[/bold red]")
        sys.exit(1)


@cli.command()
@click.argument("owner_id", type=int)
@click.argument("display_name")
@click.option("--role", "-r", "roles", multiple=True, help="Role of the owner (repeatable)")
@click.pass_context
def add_owner(ctx, owner_id, display_name, roles):
    """Create or update a feed owner."""
    app = _build_app(ctx)
    try:
        owner = app.owners.get_owner(owner_id)
        app.owners.save_owner(
            Owner(
                id=owner_id,
                display_name=display_name,
                roles=list(roles),
                feed_url=owner.feed_url if owner else None,
            )
        )
        console.print(f"[green]✅ Saved owner {owner_id} ({display_name})[/green]")
    except UserFeedError as e:
        _fail(e)
    finally:
        app.close()


@cli.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--description", default="", help="Attachment description")
@click.option("--default", "make_default", is_flag=True, help="Use as the default featured image")
@click.pass_context
def add_media(ctx, file_path, description, make_default):
    """Add a local image to the media library."""
    app = _build_app(ctx)
    try:
        attachment_id = app.attachments.add_library_file(file_path, description)
        console.print(f"[green]✅ Added attachment {attachment_id}[/green]")
        if make_default:
            app.feed_settings.update(default_media_id=attachment_id)
            console.print(f"[green]✅ Attachment {attachment_id} is now the default image[/green]")
    except UserFeedError as e:
        _fail(e)
    finally:
        app.close()


@cli.command()
@click.argument("owner_id", type=int)
@click.argument("url", required=False, default="")
@click.pass_context
def set_feed(ctx, owner_id, url):
    """Set (or with no URL, remove) an owner's feed."""
    app = _build_app(ctx)
    try:
        job = app.feed_owners.set_feed_url(owner_id, url)
        if job:
            console.print(f"[green]✅ Feed for owner {owner_id} set to {job.feed_url}[/green]")
        elif url:
            console.print("[yellow]Feed URL unchanged[/yellow]")
        else:
            console.print(f"[green]✅ Feed of owner {owner_id} removed[/green]")
    except UserFeedError as e:
        _fail(e)
    finally:
        app.close()


@cli.command()
@click.argument("hours", type=int)
@click.pass_context
def set_interval(ctx, hours):
    """Set the number of hours between imports."""
    app = _build_app(ctx)
    try:
        updated = app.feed_settings.update(interval_hours=hours)
        console.print(f"[green]✅ Imports run every {updated.interval_seconds // 3600} hours[/green]")
    except UserFeedError as e:
        _fail(e)
    finally:
        app.close()


@cli.command()
@click.option(
    "--post-status",
    type=click.Choice([status.value for status in PostStatus]),
    help="Status of imported content",
)
@click.option("--default-media", type=int, help="Attachment id used when an item has no image (0 clears)")
@click.pass_context
def set_import_defaults(ctx, post_status, default_media):
    """Change the post status and default image of imported content."""
    changes = {}
    if post_status:
        changes["post_status"] = post_status
    if default_media is not None:
        changes["default_media_id"] = default_media

    if not changes:
        console.print("[yellow]Nothing to change[/yellow]")
        return

    app = _build_app(ctx)
    try:
        updated = app.feed_settings.update(**changes)
        console.print(
            f"[green]✅ Status: {updated.post_status.value}, "
            f"default image: {updated.default_media_id or 'none'}[/green]"
        )
    except UserFeedError as e:
        _fail(e)
    finally:
        app.close()


@cli.command()
@click.argument("owner_id", type=int)
@click.pass_context
def import_now(ctx, owner_id):
    """Run one import for an owner and wait for it to finish."""
    app = _build_app(ctx)
    try:
        result = app.import_now(owner_id)
    except UserFeedError as e:
        _fail(e)
    finally:
        app.close()

    if not result.succeeded:
        console.print(f"[bold red]❌ Import failed: {result.error}[/bold red]")
        sys.exit(1)

    table = Table(title=f"Import for owner {owner_id}")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Feed", result.feed_url)
    table.add_row("Entries", str(result.entries_seen))
    table.add_row("Inserted", str(result.inserted_count))
    table.add_row("Post IDs", ", ".join(str(i) for i in result.inserted_ids) or "-")
    console.print(table)


@cli.command()
@click.pass_context
def status(ctx):
    """Show every owner's feed and the last successful import."""
    app = _build_app(ctx)
    try:
        report = app.admin.status_report()
    finally:
        app.close()

    table = Table(title="Feed Imports")
    table.add_column("Name", style="cyan")
    table.add_column("ID", style="yellow")
    table.add_column("Feed", style="blue")
    table.add_column("Next Sync")

    for row in report.rows:
        table.add_row(row.display_name, str(row.owner_id), row.feed_url, row.next_run_display)

    console.print(table)
    console.print(f"Last run: {report.last_run_display}")


@cli.command()
@click.pass_context
def serve(ctx):
    """Schedule every owner's feed and run imports until interrupted."""
    from userfeed.utils.process_lock import SchedulerLock

    lock = SchedulerLock.for_database(get_settings().database.path)
    try:
        lock.acquire()
    except SchedulingError as e:
        _fail(e)

    app = _build_app(ctx)

    try:
        jobs = app.activate()
        console.print(f"[bold green]✅ Scheduled {len(jobs)} feed imports[/bold green]")
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopping scheduler...[/yellow]")
    finally:
        app.deactivate()
        app.close()
        lock.release()


def _check_database_config(settings) -> tuple[bool, str]:
    try:
        Path(settings.database.path).parent.mkdir(parents=True, exist_ok=True)
        return True, f"Path: {settings.database.path}"
    except OSError as e:
        return False, str(e)


def _check_logging_config(settings) -> tuple[bool, str]:
    try:
        if settings.logging.file_path:
            Path(settings.logging.file_path).parent.mkdir(parents=True, exist_ok=True)
        return True, f"Level: {settings.logging.level.value}, Console: {settings.logging.console_logging}"
    except OSError as e:
        return False, str(e)


def _check_scheduler_config(settings) -> tuple[bool, str]:
    scheduler = settings.scheduler
    return True, (
        f"Every {scheduler.default_interval_hours}h, first run after "
        f"{scheduler.activation_delay_minutes}m, retry after {scheduler.recovery_delay_minutes}m"
    )


def _check_security_config(settings) -> tuple[bool, str]:
    if settings.security.secret_key == "change-me":
        return False, "USERFEED_SECURITY__SECRET_KEY is not set"
    return True, f"Feed roles: {', '.join(settings.security.authorized_roles)}"


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 UserFeed interrupted by user[/yellow]")
        sys.exit(130)
