"""Shared helpers/options for the csvmapper CLI.

Keep this module dependency-light; it should be safe to import from any CLI command module.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from typer import BadParameter

from csvmapper.settings import Settings


class LogFormat(str, Enum):
    """Supported log output formats."""

    text = "text"
    ndjson = "ndjson"


LOG_FORMAT_OPTION = typer.Option(
    None,
    "--log-format",
    case_sensitive=False,
    help="Log output format (default: settings / text).",
)
LOG_LEVEL_OPTION = typer.Option(
    None,
    "--log-level",
    help="Log level name, e.g. DEBUG, INFO, WARNING.",
)
DEBUG_OPTION = typer.Option(False, "--debug", help="Shortcut for --log-level DEBUG.")
QUIET_OPTION = typer.Option(False, "--quiet", "-q", help="Only log warnings and errors.")
INPUT_OPTION = typer.Option(
    ...,
    "--input",
    "-i",
    exists=True,
    file_okay=True,
    dir_okay=False,
    resolve_path=True,
    help="Input file (.csv, .tsv, .txt, .xlsx, .xlsm).",
)
SHEET_OPTION = typer.Option(None, "--sheet", "-s", help="Worksheet to read for workbook inputs (default: first).")
DELIMITER_OPTION = typer.Option(None, "--delimiter", "-d", help="Field delimiter for text inputs; '\\t' for tabs.")
ENCODING_OPTION = typer.Option(None, "--encoding", help="Text encoding for text inputs.")


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def resolve_log_level(log_level: Optional[str], default_level: int) -> int:
    """Resolve a string log level to a logging level constant."""
    if not log_level:
        return default_level

    resolved = logging.getLevelNamesMapping().get(str(log_level).upper())
    if isinstance(resolved, int):
        return resolved

    raise BadParameter(f"Invalid log level: {log_level}", param_hint="log_level")


def resolve_logging(
    *,
    log_format: Optional[LogFormat],
    log_level: Optional[str],
    debug: bool,
    quiet: bool,
    settings: Settings,
) -> tuple[str, int]:
    """Compute effective log format/level with explicit precedence.

    Precedence: --quiet > --debug > --log-level > settings.
    """
    effective_format = log_format.value if log_format else settings.log_format
    base_level = resolve_log_level(log_level, settings.log_level)

    if quiet:
        effective_level = logging.WARNING
    elif debug:
        effective_level = logging.DEBUG
    else:
        effective_level = base_level

    return effective_format, effective_level


# ---------------------------------------------------------------------------
# Reader settings
# ---------------------------------------------------------------------------


def resolve_delimiter(delimiter: Optional[str], default: str) -> str:
    if delimiter is None:
        return default
    if delimiter in ("\\t", "tab"):
        return "\t"
    if len(delimiter) != 1:
        raise BadParameter("Delimiter must be a single character", param_hint="delimiter")
    return delimiter


def reader_settings(
    *,
    settings: Settings,
    delimiter: Optional[str],
    encoding: Optional[str],
    input_file: Path,
) -> Settings:
    """Apply CLI reader overrides and check the input type is supported."""

    if input_file.suffix.lower() not in settings.supported_file_extensions:
        supported = ", ".join(settings.supported_file_extensions)
        raise BadParameter(f"Unsupported input type '{input_file.suffix}' (supported: {supported})", param_hint="input")

    update: dict[str, object] = {"delimiter": resolve_delimiter(delimiter, settings.delimiter)}
    if encoding:
        update["encoding"] = encoding
    return settings.model_copy(update=update)


__all__ = [
    "DEBUG_OPTION",
    "DELIMITER_OPTION",
    "ENCODING_OPTION",
    "INPUT_OPTION",
    "LOG_FORMAT_OPTION",
    "LOG_LEVEL_OPTION",
    "LogFormat",
    "QUIET_OPTION",
    "SHEET_OPTION",
    "reader_settings",
    "resolve_delimiter",
    "resolve_log_level",
    "resolve_logging",
]
