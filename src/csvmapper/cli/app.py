"""CLI entrypoint for :mod:`csvmapper`.

- `parse`   - parse an input file with a parser config and print the records.
- `headers` - print an input file's header row.
- `version` - print the package version.
"""

from __future__ import annotations

from typing import Optional

import typer

from csvmapper import __version__
from csvmapper.cli import parse as parse_commands

app = typer.Typer(
    help=(
        "csvmapper: map delimited rows into records with per-column parsers.\n\n"
        "```bash\n"
        "csvmapper parse --input people.csv --config my_pkg.people:config\n"
        "```\n"
    ),
    no_args_is_help=True,
    rich_markup_mode="markdown",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def root(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Print the version and exit.",
    ),
) -> None:
    """Map delimited rows into records."""


parse_commands.register(app)


@app.command("version")
def version_command() -> None:
    """Print the package version."""
    typer.echo(__version__)


def main() -> None:
    """Entrypoint used by console scripts and `python -m csvmapper`."""
    app()


__all__ = ["app", "main"]
