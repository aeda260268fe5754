"""FocusDesk CLI - task board backend."""

import json
import logging
import sys

import click

from . import workflows
from .config import load_config
from .core.sync import SyncSummary
from .core.tasks import Progress, filter_by_progress
from .errors import FocusdeskError
from .workflows import build_services


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else logging.INFO,
    )


@click.group()
@click.version_option(package_name="focusdesk")
def main():
    """FocusDesk - calendar-synced task board."""
    pass


@main.command()
@click.option("--host", default="127.0.0.1", help="Interface to bind")
@click.option("--port", default=5000, type=int, help="Port to listen on")
@click.option("--no-sync", is_flag=True, help="Do not start the background calendar sync")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def serve(host: str, port: int, no_sync: bool, debug: bool):
    """Run the HTTP API (and the background sync)."""
    from .web import create_app

    _setup_logging(debug)
    services = build_services(load_config())
    app = create_app(services=services)

    if not no_sync:
        services.scheduler.start()

    click.echo(f"Serving on http://{host}:{port}")
    click.echo("Press Ctrl+C to stop")
    try:
        app.run(host=host, port=port, debug=False)
    except KeyboardInterrupt:
        click.echo("\nServer stopped.")
    finally:
        services.close()


@main.command()
@click.argument("user_id")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def sync(user_id: str, debug: bool):
    """Sync one user's calendar now."""
    _setup_logging(debug)
    services = build_services(load_config())
    try:
        summary = workflows.sync_now(services, user_id)
    except FocusdeskError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        services.close()

    click.echo(f"Synced {summary.synced} new task(s) from {summary.total} event(s).")


@main.command("sync-all")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def sync_all(debug: bool):
    """Run one background sync pass over every user."""
    _setup_logging(debug)
    services = build_services(load_config())
    try:
        outcomes = services.scheduler.tick()
    finally:
        services.close()

    if not outcomes:
        click.echo("No users registered.")
        return

    failures = 0
    for user_id, outcome in outcomes.items():
        if isinstance(outcome, SyncSummary):
            click.echo(f"{user_id}: {outcome.synced}/{outcome.total}")
        else:
            failures += 1
            click.echo(f"{user_id}: failed ({outcome})")

    if failures:
        sys.exit(1)


@main.command()
@click.argument("user_id")
@click.option(
    "--column",
    type=click.Choice([p.name for p in Progress], case_sensitive=False),
    default=None,
    help="Only show one board column",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def tasks(user_id: str, column: str | None, as_json: bool):
    """List a user's active tasks."""
    services = build_services(load_config())
    try:
        active = workflows.list_tasks(services, user_id)
    except FocusdeskError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        services.close()

    if column:
        active = filter_by_progress(active, Progress[column.upper()])

    if as_json:
        click.echo(json.dumps([t.to_dict() for t in active], indent=2))
        return

    if not active:
        click.echo("No tasks.")
        return

    for task in active:
        marker = "x" if task.completed else " "
        due = f" (due {task.due_date.date()})" if task.due_date else ""
        synced = " [cal]" if task.is_synced else ""
        click.echo(f"[{marker}] {task.title}{due} - {task.progress.value}{synced}")


@main.command()
def users():
    """List registered users."""
    services = build_services(load_config())
    try:
        registered = services.users.list_all()
    except FocusdeskError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        services.close()

    if not registered:
        click.echo("No users registered.")
        return

    for user in registered:
        status = "connected" if user.has_credentials else "no credential"
        click.echo(f"{user.id}  {user.email}  ({status})")


if __name__ == "__main__":
    main()
