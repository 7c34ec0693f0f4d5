import json
import logging

from dataclasses import asdict
from pathlib import Path
from rich.console import Console
from rich.table import Table
from typing import List, Optional

import typer
import yaml

from docsplice import __version__
from docsplice.config import load_config
from docsplice.errors import ParseError
from docsplice.parsers import get_parser_for_file
from docsplice.pipeline import process_files
from docsplice.proposals import load_proposals
from docsplice.writer import read_source

app = typer.Typer(
    help="docsplice - insert generated JSDoc comments above TypeScript declarations",
    no_args_is_help=True,
)

console = Console()


@app.command()
def index(file_path: Path):
    """List the documentable declarations of a file as JSON.

    Args:
        file_path: TypeScript file to index
    """
    parser = get_parser_for_file(file_path)
    if parser is None:
        typer.echo(f"Error: Unsupported file type: {file_path}", err=True)
        raise typer.Exit(code=1)

    try:
        catalog = parser.index(read_source(file_path))
    except (OSError, ParseError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    results = []
    for record in catalog:
        record_dict = asdict(record)
        record_dict["kind"] = record.kind.value
        record_dict["qualified_name"] = record.qualified_name
        results.append(record_dict)

    typer.echo(json.dumps(results, indent=2))


@app.command()
def apply(
    files: List[Path] = typer.Argument(..., help="TypeScript files to update"),
    proposals: Path = typer.Option(..., "--proposals", "-p", help="JSON or YAML proposal file"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report without writing files"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Files processed in parallel"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
):
    """Splice proposed comments into files.

    The proposal file maps each file path to its list of proposals; a bare
    list is accepted when a single file is given.

    Examples:
        docsplice apply src/math.ts --proposals math.json
        docsplice apply src/a.ts src/b.ts -p batch.yaml --dry-run
    """
    config = load_config()
    default_file = files[0].as_posix() if len(files) == 1 else None

    try:
        batches = load_proposals(proposals, default_file=default_file)
    except (OSError, ValueError, KeyError, TypeError, yaml.YAMLError) as e:
        typer.echo(f"Error: Cannot load proposals from {proposals}: {e}", err=True)
        raise typer.Exit(code=1)

    jobs = {file_path: batches.get(file_path.as_posix(), []) for file_path in files}
    given = {file_path.as_posix() for file_path in files}
    for path in batches:
        if path not in given:
            typer.echo(f"Warning: proposals for {path} match no given file", err=True)

    results = process_files(jobs, config=config, write=not dry_run, max_workers=workers)

    if as_json:
        typer.echo(json.dumps([result.to_dict() for result in results], indent=2))
    else:
        table = Table(title="docsplice dry run" if dry_run else "docsplice")
        table.add_column("File")
        table.add_column("Status")
        table.add_column("Inserted", justify="right")
        table.add_column("Unresolved", justify="right")
        table.add_column("Documented", justify="right")
        for result in results:
            table.add_row(
                result.path,
                result.status.value,
                str(len(result.resolved)),
                str(len(result.unresolved)),
                str(len(result.skipped_documented)),
            )
        console.print(table)
        for result in results:
            if result.error:
                typer.echo(f"Error: {result.path}: {result.error}", err=True)
            for item in result.unresolved:
                typer.echo(f"  {result.path}: {item.proposal.target} {item.reason.value}")

    if any(result.failed for result in results):
        raise typer.Exit(code=1)


def _version_callback(value: bool):
    """Show version and exit."""
    if value:
        console.print(f"docsplice version {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
):
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
