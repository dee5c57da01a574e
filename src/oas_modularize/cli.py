"""
Command-line interface for oas3-modularize.
"""

import logging
from pathlib import Path
from typing import Optional

import typer

from .bundler import Bundler, save_bundle
from .config import load_catalog, load_settings
from .exceptions import DereferenceError, ModularizeError
from .models import ScaffoldingCatalog
from .transform import analyze as analyze_document
from .writer import Modularizer

app = typer.Typer(help="Split OpenAPI 3 documents into modular file trees and back")


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@app.callback()
def main_options(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    setup_logging(verbose)


def _load_catalog(config: Optional[Path]) -> ScaffoldingCatalog:
    try:
        return load_catalog(config)
    except ModularizeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _load_modularizer(
    input_file: Path, catalog: ScaffoldingCatalog, settings=None
) -> Modularizer:
    if not input_file.exists():
        typer.echo(f"Input file not found: {input_file}", err=True)
        raise typer.Exit(1)
    try:
        return Modularizer.from_yaml(input_file, catalog=catalog, settings=settings)
    except ModularizeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def detect(
    input_file: Path = typer.Argument(..., help="Path to the OpenAPI document"),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Scaffoldings file. Defaults to the bundled scaffoldings"
    ),
) -> None:
    """Detect the API style of an OpenAPI document."""
    catalog = _load_catalog(config)
    modularizer = _load_modularizer(input_file, catalog)
    report = analyze_document(modularizer.spec, catalog)

    typer.echo(f"Style: {report.detected_style} ({report.confidence}% confidence)")
    for style, score in sorted(report.scores.items(), key=lambda item: -item[1]):
        typer.echo(f"  {style:<12} {score}%")


@app.command()
def analyze(
    input_file: Path = typer.Argument(..., help="Path to the OpenAPI document"),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Scaffoldings file. Defaults to the bundled scaffoldings"
    ),
) -> None:
    """Show what a modularization would work with."""
    catalog = _load_catalog(config)
    modularizer = _load_modularizer(input_file, catalog)
    report = analyze_document(modularizer.spec, catalog)

    typer.echo(f"Style: {report.detected_style} ({report.confidence}% confidence)")
    typer.echo(f"Paths: {report.paths_count}")
    typer.echo(f"Schemas: {report.schemas_count}")
    for schema_type, count in report.schemas_by_type.items():
        typer.echo(f"  {schema_type:<10} {count}")
    typer.echo(f"Responses in components: {report.existing_responses_count}")
    typer.echo(f"Inline responses: {report.inline_responses_count}")
    typer.echo(f"Request bodies: {report.request_bodies_count}")
    typer.echo(f"Parameters: {report.parameters_count}")


@app.command()
def modularize(
    input_file: Path = typer.Argument(..., help="Path to the OpenAPI document"),
    output_dir: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output directory. Defaults to the settings value (./src)"
    ),
    scaffolding: Optional[str] = typer.Option(
        None, "--scaffolding", "-s", help="Scaffolding to apply. Detected when omitted"
    ),
    style: Optional[str] = typer.Option(
        None, "--style", help="API style used for response names. Defaults to the scaffolding"
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Scaffoldings file. Defaults to the bundled scaffoldings"
    ),
    settings_file: Optional[Path] = typer.Option(
        None, "--settings", help="Writer settings file (paths, naming, affixes)"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the plan without writing files"),
    clean: Optional[bool] = typer.Option(
        None, "--clean/--no-clean", help="Empty the output directory first"
    ),
) -> None:
    """Split an OpenAPI document into a modular file tree."""
    catalog = _load_catalog(config)
    try:
        settings = load_settings(settings_file)
    except ModularizeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    if clean is not None:
        settings.clean_output_dir = clean

    modularizer = _load_modularizer(input_file, catalog, settings)

    try:
        scaffolding = scaffolding or modularizer.choose_scaffolding()
        result = modularizer.plan(scaffolding, style)

        if dry_run:
            typer.echo(f"Scaffolding: {scaffolding} (style {result.detected_style})")
            for name, entry in result.schema_mapping.items():
                typer.echo(f"  schema   {name} -> {entry.folder}/{entry.file_name}")
            for name, entry in result.response_mapping.items():
                source = f"from {entry.original}" if entry.original else "inline"
                typer.echo(f"  response {name} ({source})")
            typer.echo("Dry run: no files written")
            return

        report = modularizer.write(result, output_dir)
    except ModularizeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Scaffolding: {report.scaffolding} (style {report.style})")
    for kind, count in report.written.items():
        typer.echo(f"  {kind:<16} {count}")
    typer.echo(f"Successfully modularized {input_file} into {report.output_dir}")


@app.command()
def bundle(
    entrypoint: Path = typer.Argument(..., help="Path to the entrypoint of a modular tree"),
    output_file: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Path to save the bundle. If not provided, will use the entrypoint name with .bundled.yaml suffix",
    ),
    remove_unused: bool = typer.Option(
        False, "--remove-unused", help="Drop components nothing references"
    ),
) -> None:
    """Bundle a modular tree back into a single OpenAPI document."""
    if not entrypoint.exists():
        typer.echo(f"Entrypoint not found: {entrypoint}", err=True)
        raise typer.Exit(1)

    if output_file is None:
        output_file = entrypoint.parent / f"{entrypoint.stem}.bundled.yaml"

    try:
        document = Bundler(entrypoint).bundle(remove_unused=remove_unused)
        save_bundle(document, output_file)
    except DereferenceError as e:
        typer.echo(f"Error bundling {entrypoint}: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Successfully bundled {entrypoint} to {output_file}")


def main():
    """Entry point for the CLI."""
    app()
