from __future__ import annotations

import click

from app.core.config import settings
from app.core.errors import FatalIngestionError
from app.core.logging_config import configure_logging
from app.core.otel import init_cli_tracing
from app.db.session import SessionLocal, build_engine
from app.ingestion.catalog_seed import run_from_path
from sqlalchemy.orm import sessionmaker


@click.command()
@click.argument("csv_path", required=False, type=click.Path(dir_okay=False))
@click.option("--database-url", default=None, help="Override DATABASE_URL for this run")
@click.option("--commit-every", default=None, type=click.IntRange(min=1), help="Rows per commit")
@click.option("--yes", is_flag=True, default=False, help="Skip the confirmation prompt")
@click.option("--verbose/--no-verbose", default=False, help="Log every skipped record")
def seed(csv_path, database_url, commit_every, yes, verbose):
    """Replace the shared catalog with the books in CSV_PATH.

    Every existing book, and every library entry pointing at one, is deleted
    first.
    """
    configure_logging("DEBUG" if verbose else None)
    init_cli_tracing("seed")
    path = csv_path or settings.seed_csv_path

    if not yes:
        click.confirm(
            "This deletes the whole catalog and all library entries. Continue?",
            abort=True,
        )

    if database_url:
        session_factory = sessionmaker(
            autocommit=False, autoflush=False, bind=build_engine(database_url)
        )
    else:
        session_factory = SessionLocal

    click.echo(click.style("Seeding catalog from: ", fg="blue") + click.style(path, fg="cyan"))

    db = session_factory()
    try:
        report = run_from_path(db, path, commit_every=commit_every)
    except FatalIngestionError as e:
        click.echo(
            click.style(f"Seed aborted: {e} ({e.inserted_count} books inserted)", fg="red"),
            err=True,
        )
        raise SystemExit(1)
    finally:
        db.close()

    click.echo(click.style(f"Inserted {report.inserted} books", fg="green"))
    if report.skipped_duplicates:
        click.echo(f"Skipped {report.skipped_duplicates} duplicate title/author pairs")
    if report.skipped_malformed:
        click.echo(f"Skipped {report.skipped_malformed} records missing title or author")


def main():
    """Entry point for the seed CLI"""
    seed()


if __name__ == "__main__":
    main()
