"""Flask CLI commands: database setup, offline CSV import, cache maintenance."""

import click
from flask.cli import with_appcontext

from mediashelf import db


def register_commands(app):
    app.cli.add_command(init_db_command)
    app.cli.add_command(import_csv_command)
    app.cli.add_command(purge_metadata_cache_command)


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Create all database tables."""
    from mediashelf import models  # noqa: F401

    db.create_all()
    click.echo("✓ Database tables created")


@click.command("import-csv")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--user", "username", required=True, help="Owner of the imported items.")
@with_appcontext
def import_csv_command(path, username):
    """Import a library export CSV for USER.

    The file is copied into the upload spool first; PATH itself is left untouched.
    """
    from flask import current_app
    from mediashelf.importer.orchestrator import ImportOrchestrator
    from mediashelf.importer.spool import spool_copy
    from mediashelf.models import User
    from mediashelf.services.errors import BatchParseFailed
    from mediashelf.services.registry import get_services

    user = User.query.filter_by(username=username).first()
    if user is None:
        raise click.ClickException(f"User '{username}' not found")

    orchestrator = ImportOrchestrator(
        get_services().covers,
        max_rows=current_app.config.get("IMPORT_MAX_ROWS"),
    )
    spooled = spool_copy(path, current_app.config["UPLOAD_FOLDER"])
    try:
        outcome = orchestrator.run(user, spooled)
    except BatchParseFailed as e:
        raise click.ClickException(f"Could not parse {path}: {e}")

    click.echo(
        f"Imported {outcome.digital_items} digital and {outcome.physical_items} physical items, "
        f"skipped {outcome.skipped}"
    )
    for message in outcome.error_messages():
        click.echo(f"  ✗ {message}")


@click.command("purge-metadata-cache")
@with_appcontext
def purge_metadata_cache_command():
    """Remove expired entries from the metadata cache."""
    from mediashelf.services.registry import get_services

    removed = get_services().cache.purge_expired()
    click.echo(f"Removed {removed} expired metadata cache entries")
