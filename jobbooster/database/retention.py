from datetime import datetime, timedelta

import click
from flask import current_app
from flask.cli import with_appcontext

from jobbooster.databases import purge_deleted_cvs, purge_expired_sessions


@click.command("purge-deleted")
@click.option("--days", type=int, default=None, help="Retention window; defaults to DATA_RETENTION_DAYS.")
@click.option("--dry-run", is_flag=True, help="Only count the records that would be removed.")
@with_appcontext
def purge_deleted(days, dry_run):
    """Hard-delete CV records soft-deleted more than N days ago, with their uploads."""
    if days is None:
        days = current_app.config.get("DATA_RETENTION_DAYS", 30)
    if days < 0:
        raise click.BadParameter("must not be negative", param_hint="--days")

    cutoff = datetime.utcnow() - timedelta(days=days)
    count = purge_deleted_cvs(cutoff, dry_run=dry_run)

    verb = "Would remove" if dry_run else "Removed"
    click.echo(f"{verb} {count} CV record(s) deleted before {cutoff.date().isoformat()}")


@click.command("purge-sessions")
@click.option("--dry-run", is_flag=True, help="Only count the sessions that would be removed.")
@with_appcontext
def purge_sessions(dry_run):
    """Drop revoked sessions and sessions whose token has expired."""
    hours = current_app.config.get("JWT_ACCESS_TOKEN_HOURS", 3)
    cutoff = datetime.utcnow() - timedelta(hours=hours)
    count = purge_expired_sessions(cutoff, dry_run=dry_run)

    verb = "Would remove" if dry_run else "Removed"
    click.echo(f"{verb} {count} session(s) revoked or issued before {cutoff.isoformat(timespec='minutes')}")
