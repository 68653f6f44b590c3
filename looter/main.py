"""
Looter — CLI Entry Point

Usage:
    looter init --storage-path /srv/mirrors [--update-delta 300]
    looter serve [--db db.json] [--host 127.0.0.1] [--port 8080]
    looter status [--json]
"""

from __future__ import annotations

import json
import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

import click

from .config import Settings
from .logging_config import setup_logging
from .mirror.errors import StateFileError
from .mirror.git_sync import GitOperations
from .mirror.scheduler import MirrorScheduler
from .models.state import MirrorState
from .persistence.state_file import create_snapshot, load_snapshot, save_snapshot

logger = logging.getLogger(__name__)


def _db_path(ctx: click.Context, db_file: Optional[str]) -> Path:
    return Path(db_file) if db_file else ctx.obj["settings"].db_path


@click.group()
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str]) -> None:
    """Looter — keep local mirrors of git repositories fresh."""
    # Settings first: it loads .env, which may set LOG_LEVEL and LOG_FORMAT
    settings = Settings.from_env()
    setup_logging(level=log_level)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


@cli.command()
@click.option("--db", "db_file", default=None, help="Path to the database file")
@click.option("--host", default=None, help="Bind address")
@click.option("--port", type=int, default=None, help="Port to listen on")
@click.pass_context
def serve(
    ctx: click.Context,
    db_file: Optional[str],
    host: Optional[str],
    port: Optional[int],
) -> None:
    """Run the scheduler and the control API."""
    from .admin.server import run_server

    settings: Settings = ctx.obj["settings"]
    db_path = _db_path(ctx, db_file)

    try:
        snapshot = load_snapshot(db_path)
    except StateFileError as e:
        logger.error(str(e))
        ctx.exit(1)

    # Rewrite once so the file is in canonical form before anything changes
    try:
        save_snapshot(snapshot, db_path)
    except OSError as e:
        logger.error(f"Failed to update db {db_path}: {e}")

    scheduler = MirrorScheduler(
        snapshot,
        db_path,
        git=GitOperations(timeout=settings.git_timeout),
        request_timeout=settings.request_timeout,
    )
    scheduler.start()
    try:
        run_server(scheduler, host=host or settings.host, port=port or settings.port)
    finally:
        scheduler.stop(timeout=5)


@cli.command()
@click.option("--db", "db_file", default=None, help="Path to the database file")
@click.option("--storage-path", required=True, help="Directory that holds the mirrors")
@click.option(
    "--update-delta",
    type=click.IntRange(min=1),
    default=300,
    show_default=True,
    help="Seconds between refreshes of a mirror",
)
@click.pass_context
def init(
    ctx: click.Context,
    db_file: Optional[str],
    storage_path: str,
    update_delta: int,
) -> None:
    """Create an empty database for a new installation."""
    db_path = _db_path(ctx, db_file)
    try:
        create_snapshot(db_path, storage_path, timedelta(seconds=update_delta))
    except (StateFileError, OSError) as e:
        raise click.ClickException(str(e))

    click.secho(f"✓ Created {db_path}", fg="green")
    click.echo(f"  Storage:      {storage_path}")
    click.echo(f"  Update every: {update_delta}s")


@cli.command()
@click.option("--db", "db_file", default=None, help="Path to the database file")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def status(ctx: click.Context, db_file: Optional[str], as_json: bool) -> None:
    """Show mirrors recorded in the database."""
    db_path = _db_path(ctx, db_file)
    try:
        snapshot = load_snapshot(db_path)
    except StateFileError as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps(snapshot.model_dump(mode="json")["mirrors"], indent=2))
        return

    click.echo(f"Storage:      {snapshot.storage_path}")
    click.echo(f"Update every: {int(snapshot.update_delta.total_seconds())}s")
    click.echo(f"Mirrors:      {len(snapshot.mirrors)}")
    click.echo("")

    for name, mirror in sorted(snapshot.mirrors.items()):
        color = "green" if mirror.state == MirrorState.READY else "yellow"
        last = mirror.last_update.isoformat() if mirror.last_update else "never"
        click.secho(f"  {name:20} {mirror.state.value:6}", fg=color, nl=False)
        click.echo(f"  {last}  {mirror.url}")


if __name__ == "__main__":
    cli()
