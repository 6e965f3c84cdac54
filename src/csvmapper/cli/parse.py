"""`csvmapper parse` and `csvmapper headers` commands."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import List, Optional

import typer

from csvmapper.engine import CsvParser
from csvmapper.exceptions import CsvMapperError, ReaderError
from csvmapper.loader import load_config
from csvmapper.logging import create_run_logger_context
from csvmapper.models import ParserConfig
from csvmapper.printer import TableRow, parse_to_string
from csvmapper.readers import EndOfInput, open_reader
from csvmapper.settings import Settings

from .common import (
    DEBUG_OPTION,
    DELIMITER_OPTION,
    ENCODING_OPTION,
    INPUT_OPTION,
    LOG_FORMAT_OPTION,
    LOG_LEVEL_OPTION,
    QUIET_OPTION,
    SHEET_OPTION,
    LogFormat,
    reader_settings,
    resolve_logging,
)


def _apply_overrides(
    config: ParserConfig,
    *,
    headers: List[str],
    terminate_on_error: Optional[bool],
    settings: Settings,
) -> ParserConfig:
    update: dict[str, object] = {}
    if headers:
        update["headers"] = tuple(headers)
    if terminate_on_error is not None:
        update["terminate_on_parsing_error"] = terminate_on_error
    elif settings.terminate_on_parsing_error:
        update["terminate_on_parsing_error"] = True
    return dataclasses.replace(config, **update) if update else config


def render_records(records: list, *, column_width: int) -> str:
    """Table form when every record supports it, else one ``repr`` per line."""

    if records and all(isinstance(record, TableRow) for record in records):
        return parse_to_string(records, column_width=column_width)
    return "\n".join(repr(record) for record in records)


def run_parse(
    *,
    input_file: Path,
    config_ref: str,
    import_root: Optional[Path],
    headers: List[str],
    sheet: Optional[str],
    terminate_on_error: Optional[bool],
    delimiter: Optional[str],
    encoding: Optional[str],
    log_format: Optional[LogFormat],
    log_level: Optional[str],
    debug: bool,
    quiet: bool,
) -> int:
    """Parse ``input_file`` with the referenced config; returns the exit code."""

    settings = reader_settings(
        settings=Settings.load(), delimiter=delimiter, encoding=encoding, input_file=input_file
    )
    effective_format, effective_level = resolve_logging(
        log_format=log_format, log_level=log_level, debug=debug, quiet=quiet, settings=settings
    )

    try:
        config = _apply_overrides(
            load_config(config_ref, import_root=import_root),
            headers=headers,
            terminate_on_error=terminate_on_error,
            settings=settings,
        )
    except CsvMapperError as exc:
        typer.echo(f"config_error: {exc}", err=True)
        return 1

    with create_run_logger_context(log_format=effective_format, log_level=effective_level) as log_ctx:
        log_ctx.logger.event(
            "settings.effective",
            message="Effective reader settings",
            level=logging.DEBUG,
            data={"settings": settings.model_dump(mode="json")},
        )
        try:
            parser = CsvParser.from_path(input_file, config, settings=settings, sheet_name=sheet, logger=log_ctx.logger)
        except CsvMapperError as exc:
            typer.echo(f"reader_error: {exc}", err=True)
            return 1
        result = parser.run()

    if result.error is not None:
        typer.echo(f"{result.error.code.value}: {result.error.message}", err=True)
        return 1

    records = list(result.records)
    if records:
        typer.echo(render_records(records, column_width=settings.table_column_width))
    typer.echo(
        f"{len(records)} records parsed, {result.rows_skipped} rows skipped ({result.status.value})",
        err=True,
    )
    return 0


def read_headers(*, input_file: Path, sheet: Optional[str], delimiter: Optional[str], encoding: Optional[str]) -> list[str]:
    settings = reader_settings(
        settings=Settings.load(), delimiter=delimiter, encoding=encoding, input_file=input_file
    )
    with open_reader(input_file, settings=settings, sheet_name=sheet) as reader:
        try:
            row = reader.read()
        except EndOfInput:
            return []
        except Exception as exc:
            raise ReaderError(f"couldn't read headers from file: {exc}") from exc
    return [token.strip(" ") for token in row]


def register(app: typer.Typer) -> None:
    @app.command("parse")
    def parse_command(
        input_file: Path = INPUT_OPTION,
        config: str = typer.Option(
            ...,
            "--config",
            "-c",
            help="Parser config reference, e.g. 'my_pkg.people:config'.",
        ),
        import_root: Optional[Path] = typer.Option(
            None,
            "--path",
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
            help="Directory added to the import path while loading --config.",
        ),
        header: List[str] = typer.Option(
            [],
            "--header",
            "-H",
            help="Explicit header(s), in column order, for inputs without a header row.",
        ),
        sheet: Optional[str] = SHEET_OPTION,
        terminate_on_error: Optional[bool] = typer.Option(
            None,
            "--terminate-on-error/--skip-errors",
            help="Abort on the first bad row instead of skipping it (default: config / settings).",
        ),
        delimiter: Optional[str] = DELIMITER_OPTION,
        encoding: Optional[str] = ENCODING_OPTION,
        log_format: Optional[LogFormat] = LOG_FORMAT_OPTION,
        log_level: Optional[str] = LOG_LEVEL_OPTION,
        debug: bool = DEBUG_OPTION,
        quiet: bool = QUIET_OPTION,
    ) -> None:
        """Parse an input file into records and print them."""

        code = run_parse(
            input_file=input_file,
            config_ref=config,
            import_root=import_root,
            headers=header,
            sheet=sheet,
            terminate_on_error=terminate_on_error,
            delimiter=delimiter,
            encoding=encoding,
            log_format=log_format,
            log_level=log_level,
            debug=debug,
            quiet=quiet,
        )
        raise typer.Exit(code=code)

    @app.command("headers")
    def headers_command(
        input_file: Path = INPUT_OPTION,
        sheet: Optional[str] = SHEET_OPTION,
        delimiter: Optional[str] = DELIMITER_OPTION,
        encoding: Optional[str] = ENCODING_OPTION,
    ) -> None:
        """Print the header row of an input file, one name per line."""

        try:
            headers = read_headers(input_file=input_file, sheet=sheet, delimiter=delimiter, encoding=encoding)
        except CsvMapperError as exc:
            typer.echo(f"reader_error: {exc}", err=True)
            raise typer.Exit(code=1)
        for name in headers:
            typer.echo(name)


__all__ = ["read_headers", "register", "render_records", "run_parse"]
