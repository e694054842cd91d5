"""
Flask CLI commands for scheduled care-engine jobs.

Usage:
    flask generate-recommendations                 # All users with plants
    flask generate-recommendations --user <uuid>   # One user
    flask generate-recommendations --workers 8     # Override GENERATION_MAX_WORKERS
    flask expire-recommendations                   # Mark closed-window rows as expired

Both are meant to be run from cron; exit status is 1 when any user failed.
"""

from __future__ import annotations

import click
from flask import Flask
from flask.cli import with_appcontext

from .engine import get_engine
from .utils.errors import PlantCareError


@click.command("generate-recommendations")
@click.option("--user", "user_id", default=None, help="Only generate for this user id.")
@click.option("--workers", type=int, default=None, help="Thread pool size (defaults to GENERATION_MAX_WORKERS).")
@with_appcontext
def generate_recommendations_command(user_id: str | None, workers: int | None) -> None:
    """Generate and store auto recommendations."""
    orchestrator = get_engine().recommendations

    if user_id:
        try:
            count = orchestrator.generate_and_persist(user_id)
        except PlantCareError as e:
            click.echo(f"Failed for {user_id}: {e.message}")
            raise SystemExit(1)
        click.echo(f"Wrote {count} recommendation(s) for {user_id}.")
        return

    results = orchestrator.generate_all(max_workers=workers)
    if not results:
        click.echo("No users with active plants.")
        return

    failed = {uid: r["error"] for uid, r in results.items() if "error" in r}
    written = sum(r.get("count", 0) for r in results.values())
    for uid, error in sorted(failed.items()):
        click.echo(f"  Failed: {uid}: {error}")
    click.echo(f"\nDone. Users: {len(results)}, Written: {written}, Failed: {len(failed)}")
    if failed:
        raise SystemExit(1)


@click.command("expire-recommendations")
@with_appcontext
def expire_recommendations_command() -> None:
    """Mark active recommendations whose window has closed as expired."""
    count = get_engine().recommendations.expire_stale()
    click.echo(f"Expired {count} recommendation(s).")


def register_commands(app: Flask) -> None:
    app.cli.add_command(generate_recommendations_command)
    app.cli.add_command(expire_recommendations_command)
