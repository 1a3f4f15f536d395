"""Typer application entrypoint."""

from __future__ import annotations

from pathlib import Path

import typer
from rich import print as rprint
from rich.table import Table
from sqlalchemy import func, select

from catalog_db.lifecycle import bootstrap as catalog_bootstrap
from catalog_db.schema import Image, Patient, Series, Study
from catalog_db.session import session_scope
from ingest import IngestConfig, IngestionListener, IngestionOutcome, IngestionPipeline, IngestionResult
from logging_config import configure_logging


configure_logging()


app = typer.Typer(help="Medical image ingestion and catalog CLI")
catalog_app = typer.Typer(help="Manage the patient/study/series catalog")

app.add_typer(catalog_app, name="catalog")

_POLL_SECONDS = 0.2


def _build_pipeline(listener: IngestionListener) -> IngestionPipeline:
    return IngestionPipeline(listener=listener)


def _print_conflicts(result: IngestionResult) -> None:
    if not result.conflicts:
        return
    table = Table(title="Already cataloged series (skipped)")
    table.add_column("Patient")
    table.add_column("Study")
    table.add_column("Series")
    table.add_column("Sample file")
    for record in result.conflicts:
        table.add_row(record.patient_name, record.study_name, record.series_name, record.sample_path)
    rprint(table)
    rprint("[yellow]Delete these series first for a cleaner re-import.[/yellow]")


@app.command()
def ingest(
    path: Path = typer.Argument(..., help="File or directory to ingest"),
    index_only: bool = typer.Option(False, "--index-only", help="Catalog files in place without copying them"),
) -> None:
    """Import (or index) medical images into the catalog."""

    config = IngestConfig(source=path, index_only=index_only)
    catalog_bootstrap()

    listener = IngestionListener(
        progress=lambda percent: typer.echo(f"Progress: {percent}%", err=True),
        error=lambda message: typer.echo(f"Warning: {message}", err=True),
    )
    pipeline = _build_pipeline(listener)
    pipeline.start(config.source, index_only=config.index_only)

    while True:
        try:
            if pipeline.wait(_POLL_SECONDS):
                break
        except KeyboardInterrupt:
            typer.echo("Cancelling after the current item...", err=True)
            pipeline.cancel()

    result = pipeline.last_result
    if result is None or result.outcome is IngestionOutcome.FAILURE:
        message = result.message if result is not None else "Ingestion failed"
        typer.echo(f"Ingestion failed: {message}", err=True)
        raise typer.Exit(code=1)
    if result.outcome is IngestionOutcome.CANCELLED:
        typer.echo(result.message, err=True)
        raise typer.Exit(code=130)

    _print_conflicts(result)
    if result.metrics:
        typer.echo(
            "Run summary: " + ", ".join(f"{key}={value}" for key, value in result.metrics.items()),
            err=True,
        )
    typer.echo(f"Ingestion completed: {len(result.imported_series_ids)} series added.")


@catalog_app.command("init")
def catalog_init() -> None:
    version = catalog_bootstrap()
    typer.echo(f"Catalog schema ready (version {version}).")


@catalog_app.command("show")
def catalog_show() -> None:
    """List patients with their study, series and image counts."""

    catalog_bootstrap()
    stmt = (
        select(
            Patient.name,
            func.count(func.distinct(Study.id)),
            func.count(func.distinct(Series.id)),
            func.count(func.distinct(Image.id)),
        )
        .select_from(Patient)
        .outerjoin(Study, Study.patient_id == Patient.id)
        .outerjoin(Series, Series.study_id == Study.id)
        .outerjoin(Image, Image.series_id == Series.id)
        .group_by(Patient.id, Patient.name)
        .order_by(Patient.name)
    )
    with session_scope() as session:
        rows = session.execute(stmt).all()

    if not rows:
        rprint("[yellow]Catalog is empty[/yellow]")
        return

    table = Table(title="Catalog")
    table.add_column("Patient")
    table.add_column("Studies", justify="right")
    table.add_column("Series", justify="right")
    table.add_column("Images", justify="right")
    for name, studies, series, images in rows:
        table.add_row(name, str(studies), str(series), str(images))
    rprint(table)


if __name__ == "__main__":
    app()
