"""Row-to-record mapping engine."""

from __future__ import annotations

import copy
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any, Callable, Generic, Sequence, TypeVar

from csvmapper.exceptions import (
    ConfigError,
    CsvMapperError,
    HeaderError,
    HeaderReadError,
    HookError,
    ParseError,
    ReaderError,
    RowLengthError,
    UnparsableHeaderError,
)
from csvmapper.logging import NullLogger, RunLogger
from csvmapper.models import (
    HookName,
    ParseErrorCode,
    ParseFailure,
    ParseResult,
    ParserConfig,
    ParseStatus,
)
from csvmapper.readers import CsvRowReader, EndOfInput, RowReader, open_reader
from csvmapper.settings import Settings

R = TypeVar("R")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _callable_name(fn: Callable[..., Any]) -> str:
    return getattr(fn, "__qualname__", getattr(fn, "__name__", repr(fn)))


_ERROR_CODES: dict[type[CsvMapperError], ParseErrorCode] = {
    ConfigError: ParseErrorCode.CONFIG_ERROR,
    HeaderError: ParseErrorCode.HEADER_ERROR,
    ParseError: ParseErrorCode.PARSE_ERROR,
    ReaderError: ParseErrorCode.READER_ERROR,
    HookError: ParseErrorCode.HOOK_ERROR,
}


class CsvParser(Generic[R]):
    """Parses every row from ``reader`` into records described by ``config``.

    One instance handles one input: headers are resolved once and the reader is
    consumed by :meth:`parse`. Build a new instance for each parse task.
    """

    def __init__(
        self,
        reader: RowReader,
        config: ParserConfig[R],
        *,
        logger: RunLogger | None = None,
    ) -> None:
        if not isinstance(config, ParserConfig):
            raise ConfigError(f"config must be a ParserConfig, got {type(config).__name__}")
        self.reader = reader
        self.config = config
        self.logger = logger or NullLogger()
        self.rows_read = 0
        self.rows_skipped = 0
        self._headers: tuple[str, ...] | None = None
        self._consumed = False
        self._owns_reader = False

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------
    @classmethod
    def from_bytes(cls, data: bytes, config: ParserConfig[R], *, settings: Settings | None = None, **kwargs: Any) -> "CsvParser[R]":
        settings = settings or Settings()
        reader = CsvRowReader.from_bytes(
            data, encoding=settings.encoding, **CsvRowReader.options_from_settings(settings)
        )
        parser = cls(reader, config, **kwargs)
        parser._owns_reader = True
        return parser

    @classmethod
    def from_stream(cls, stream: IO[Any], config: ParserConfig[R], *, settings: Settings | None = None, **kwargs: Any) -> "CsvParser[R]":
        settings = settings or Settings()
        reader = CsvRowReader.from_stream(
            stream, encoding=settings.encoding, **CsvRowReader.options_from_settings(settings)
        )
        parser = cls(reader, config, **kwargs)
        parser._owns_reader = True
        return parser

    @classmethod
    def from_path(
        cls,
        path: Path,
        config: ParserConfig[R],
        *,
        settings: Settings | None = None,
        sheet_name: str | None = None,
        **kwargs: Any,
    ) -> "CsvParser[R]":
        parser = cls(open_reader(Path(path), settings=settings, sheet_name=sheet_name), config, **kwargs)
        parser._owns_reader = True
        return parser

    # ------------------------------------------------------------------
    # Headers
    # ------------------------------------------------------------------
    @property
    def headers(self) -> tuple[str, ...] | None:
        """Resolved headers, or ``None`` before :meth:`resolve_headers` succeeds."""
        return self._headers

    def resolve_headers(self) -> tuple[str, ...]:
        """Validate configured headers or load them from the first input row."""

        if self._headers is not None:
            return self._headers

        if self.config.has_explicit_headers:
            for header in self.config.headers:
                if self.config.parser_for(header) is None:
                    raise UnparsableHeaderError(header)
            headers = self.config.headers
            source = "config"
        else:
            headers = self._load_headers_from_reader()
            source = "input"

        self._headers = headers
        self.logger.event(
            "headers.resolved",
            message=f"Resolved {len(headers)} headers",
            data={"headers": list(headers), "source": source},
        )
        return headers

    def _load_headers_from_reader(self) -> tuple[str, ...]:
        try:
            row = self.reader.read()
        except EndOfInput as exc:
            raise HeaderReadError("couldn't read headers from file: input is empty") from exc
        except Exception as exc:
            raise HeaderReadError(f"couldn't read headers from file: {exc}") from exc

        loaded: list[str] = []
        for token in row:
            header = token.strip(" ")
            if self.config.parser_for(header) is None:
                raise UnparsableHeaderError(header, loaded_headers=loaded)
            loaded.append(header)
        return tuple(loaded)

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------
    def parse_row(self, fields: Sequence[str]) -> R:
        """Build one record from ``fields``; a failing column parser's exception propagates as-is."""

        headers = self._headers
        if headers is None:
            raise ConfigError("Headers are not resolved; call resolve_headers() first")
        if len(fields) != len(headers):
            raise RowLengthError(field_count=len(fields), header_count=len(headers))

        record = self.config.record_factory()
        for value, header in zip(fields, headers):
            parser = self.config.parser_for(header)
            if parser is None:
                raise UnparsableHeaderError(header)
            parser(value, record)
        return record

    def _parse_results(self) -> list[R]:
        result: list[R] = []
        while True:
            try:
                row = self.reader.read()
            except EndOfInput:
                break
            except Exception as exc:
                row_number = self.rows_read + 1
                raise ReaderError(f"couldn't read row {row_number}: {exc}", row_number=row_number) from exc

            self.rows_read += 1
            row_number = self.rows_read
            try:
                record = self.parse_row(row)
            except Exception as exc:
                terminate = self.config.terminate_on_parsing_error
                self.logger.event(
                    "row.failed",
                    message=f"Row {row_number} failed: {exc}",
                    level=logging.WARNING,
                    data={
                        "row_number": row_number,
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                        "action": "terminate" if terminate else "skip",
                    },
                )
                self._run_hook(HookName.ON_ERROR, self.config.on_error, list(row), exc)
                if terminate:
                    raise ParseError(exc, row_number=row_number, row=row) from exc
                self.rows_skipped += 1
                continue

            result.append(record)
            self.logger.event("row.parsed", level=logging.DEBUG, data={"row_number": row_number})
            self._run_hook(HookName.AFTER_EACH_ROW, self.config.after_each_row, copy.copy(record))
        return result

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------
    def _run_hook(self, hook_name: HookName, fn: Callable[..., Any] | None, *args: Any) -> None:
        if fn is None:
            return

        data = {"hook_name": hook_name.value, "hook": _callable_name(fn)}
        self.logger.event("hook.start", level=logging.DEBUG, data=data)
        try:
            fn(*args)
        except Exception as exc:
            message = f"Hook {data['hook']} failed during {hook_name.value}"
            self.logger.exception(message, exc_info=exc)
            raise HookError(message, stage=hook_name.value) from exc
        self.logger.event("hook.end", level=logging.DEBUG, data=data)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------
    def parse(self) -> list[R]:
        """Parse the whole input and return the records in row order.

        Raises :class:`HeaderError` before any row is read when headers cannot be
        resolved, :class:`ParseError` on the first bad row when termination-on-error
        is active, and :class:`ReaderError` when the reader fails mid-stream.
        """

        if self._consumed:
            raise ConfigError("parse() already ran; create a new CsvParser for another input")
        self._consumed = True

        self.logger.event(
            "parse.started",
            message="Parse started",
            data={
                "explicit_headers": self.config.has_explicit_headers,
                "column_count": len(self.config.column_parsers),
                "terminate_on_parsing_error": self.config.terminate_on_parsing_error,
            },
        )

        self._run_hook(HookName.ON_START, self.config.on_start)
        try:
            self.resolve_headers()
            records = self._parse_results()
        except CsvMapperError as exc:
            self.logger.event(
                "parse.failed",
                message=f"Parse failed: {exc}",
                level=logging.ERROR,
                data={"rows_read": self.rows_read, "error_type": type(exc).__name__, "error": str(exc)},
            )
            raise
        finally:
            try:
                self._run_hook(HookName.ON_FINISH, self.config.on_finish)
            finally:
                if self._owns_reader:
                    close = getattr(self.reader, "close", None)
                    if callable(close):
                        close()

        self.logger.event(
            "parse.completed",
            message=f"Parsed {len(records)} records",
            data={
                "rows_read": self.rows_read,
                "rows_parsed": len(records),
                "rows_skipped": self.rows_skipped,
            },
        )
        return records

    def run(self) -> ParseResult[R]:
        """Parse and report the outcome as a :class:`ParseResult` instead of raising."""

        started_at = _utc_now()
        records: list[R] = []
        error: ParseFailure | None = None
        status = ParseStatus.FAILED

        try:
            records = self.parse()
            status = ParseStatus.SUCCEEDED
        except CsvMapperError as exc:
            code = next(
                (val for exc_type, val in _ERROR_CODES.items() if isinstance(exc, exc_type)),
                ParseErrorCode.UNKNOWN_ERROR,
            )
            error = ParseFailure(code=code, message=str(exc), exception=exc)
        except Exception as exc:  # pragma: no cover
            error = ParseFailure(code=ParseErrorCode.UNKNOWN_ERROR, message=str(exc), exception=exc)
            self.logger.exception("Parse failed", exc_info=exc)

        return ParseResult(
            status=status,
            records=records,
            error=error,
            rows_read=self.rows_read,
            rows_skipped=self.rows_skipped,
            started_at=started_at,
            completed_at=_utc_now(),
        )


__all__ = ["CsvParser"]
