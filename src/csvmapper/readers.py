"""Row readers feeding :class:`~csvmapper.engine.CsvParser`.

A reader yields one row (a list of field strings) per :meth:`read` call and
raises :class:`EndOfInput` once the input is exhausted. Any other exception is
a reader fault. The engine never tokenizes text itself.
"""

from __future__ import annotations

import csv
import io
import zipfile
from contextlib import suppress
from datetime import date, datetime, time
from pathlib import Path
from typing import IO, Any, Iterable, Iterator, Protocol, Sequence, runtime_checkable

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from csvmapper.exceptions import ReaderError
from csvmapper.settings import Settings


class EndOfInput(Exception):
    """Signals that a reader has no more rows."""


@runtime_checkable
class RowReader(Protocol):
    def read(self) -> list[str]:
        """Return the next row or raise :class:`EndOfInput`."""
        ...


class _IteratorRowReader:
    """Shared plumbing for readers backed by a row iterator."""

    def __init__(self, rows: Iterator[Sequence[Any]], *, skip_blank_lines: bool = True) -> None:
        self._rows = rows
        self._skip_blank_lines = skip_blank_lines
        self._closers: list[Any] = []
        self.rows_returned = 0

    def _convert(self, row: Sequence[Any]) -> list[str]:
        return [str(value) for value in row]

    def _is_blank(self, row: Sequence[Any]) -> bool:
        return all(value is None or value == "" for value in row)

    def read(self) -> list[str]:
        while True:
            try:
                row = next(self._rows)
            except StopIteration:
                raise EndOfInput() from None
            if self._skip_blank_lines and self._is_blank(row):
                continue
            self.rows_returned += 1
            return self._convert(row)

    def __iter__(self) -> Iterator[list[str]]:
        while True:
            try:
                yield self.read()
            except EndOfInput:
                return

    def close(self) -> None:
        for closer in reversed(self._closers):
            with suppress(Exception):
                closer.close()
        self._closers.clear()

    def __enter__(self):
        return self

    def __exit__(self, _exc_type, _exc, _tb) -> None:
        self.close()


class SequenceRowReader(_IteratorRowReader):
    """Reads rows from an in-memory sequence (fields are rendered with ``str``)."""

    def __init__(self, rows: Iterable[Sequence[Any]], *, skip_blank_lines: bool = False) -> None:
        super().__init__(iter(list(rows)), skip_blank_lines=skip_blank_lines)


class CsvRowReader(_IteratorRowReader):
    """Delimited-text reader built on :func:`csv.reader`.

    Quoting, escaping and line splitting follow the configured ``csv`` dialect.
    Blank lines are skipped unless ``skip_blank_lines`` is false.
    """

    def __init__(
        self,
        handle: IO[str],
        *,
        delimiter: str = ",",
        quotechar: str = '"',
        skip_initial_space: bool = False,
        skip_blank_lines: bool = True,
    ) -> None:
        self._reader = csv.reader(
            handle,
            delimiter=delimiter,
            quotechar=quotechar,
            skipinitialspace=skip_initial_space,
        )
        super().__init__(self._reader, skip_blank_lines=skip_blank_lines)

    def _is_blank(self, row: Sequence[Any]) -> bool:
        # Only truly empty lines; a line of delimiters is a row of empty fields.
        return len(row) == 0

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------
    @classmethod
    def from_text(cls, text: str, **options: Any) -> "CsvRowReader":
        return cls(io.StringIO(text, newline=""), **options)

    @classmethod
    def from_bytes(cls, data: bytes, *, encoding: str = "utf-8-sig", **options: Any) -> "CsvRowReader":
        return cls.from_stream(io.BytesIO(data), encoding=encoding, **options)

    @classmethod
    def from_stream(cls, stream: IO[Any], *, encoding: str = "utf-8-sig", **options: Any) -> "CsvRowReader":
        """Wrap a text or binary stream (e.g. an uploaded file object)."""

        if isinstance(stream, io.TextIOBase):
            return cls(stream, **options)
        text = io.TextIOWrapper(stream, encoding=encoding, newline="")
        reader = cls(text, **options)
        # Keep the wrapper alive without closing the caller's stream.
        reader._closers.append(_Detacher(text))
        return reader

    @classmethod
    def from_path(cls, path: Path, *, encoding: str = "utf-8-sig", **options: Any) -> "CsvRowReader":
        try:
            handle = Path(path).open("r", encoding=encoding, newline="")
        except (OSError, LookupError) as exc:
            raise ReaderError(f"couldn't open '{Path(path).name}': {exc}") from exc
        reader = cls(handle, **options)
        reader._closers.append(handle)
        return reader

    @staticmethod
    def options_from_settings(settings: Settings) -> dict[str, Any]:
        return {
            "delimiter": settings.delimiter,
            "quotechar": settings.quotechar,
            "skip_initial_space": settings.skip_initial_space,
            "skip_blank_lines": settings.skip_blank_lines,
        }


class _Detacher:
    def __init__(self, wrapper: io.TextIOWrapper) -> None:
        self._wrapper = wrapper

    def close(self) -> None:
        self._wrapper.detach()


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


class WorksheetRowReader(_IteratorRowReader):
    """Reads rows from one worksheet of an ``.xlsx``/``.xlsm`` workbook.

    Read-only worksheets pad every row out to the sheet dimension, which counts
    styled but empty cells. The first row returned fixes the width at its last
    non-empty cell; empty cells past that width are dropped from every row.
    """

    def __init__(self, worksheet: Any, *, skip_blank_lines: bool = True) -> None:
        super().__init__(worksheet.iter_rows(values_only=True), skip_blank_lines=skip_blank_lines)
        self.width: int | None = None

    def _convert(self, row: Sequence[Any]) -> list[str]:
        cells = list(row)
        if self.width is None:
            self.width = _filled_width(cells)
        end = max(self.width, _filled_width(cells))
        return [_cell_text(value) for value in cells[:end]]

    @classmethod
    def from_path(
        cls,
        path: Path,
        *,
        sheet_name: str | None = None,
        skip_blank_lines: bool = True,
    ) -> "WorksheetRowReader":
        path = Path(path)
        try:
            workbook = openpyxl.load_workbook(filename=path, read_only=True, data_only=True)
        except (OSError, zipfile.BadZipFile, InvalidFileException, KeyError) as exc:
            raise ReaderError(f"couldn't open workbook '{path.name}': {exc}") from exc
        try:
            if sheet_name is None:
                worksheet = workbook.worksheets[0]
            elif sheet_name in workbook.sheetnames:
                worksheet = workbook[sheet_name]
            else:
                raise ReaderError(f"Worksheet not found: {sheet_name}")
        except Exception:
            workbook.close()
            raise
        reader = cls(worksheet, skip_blank_lines=skip_blank_lines)
        reader._closers.append(workbook)
        return reader


def _filled_width(cells: Sequence[Any]) -> int:
    width = len(cells)
    while width and cells[width - 1] is None:
        width -= 1
    return width


_WORKBOOK_SUFFIXES = {".xlsx", ".xlsm"}


def open_reader(path: Path, *, settings: Settings | None = None, sheet_name: str | None = None) -> _IteratorRowReader:
    """Open a reader for ``path`` chosen by file suffix."""

    settings = settings or Settings()
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in settings.supported_file_extensions:
        supported = ", ".join(settings.supported_file_extensions)
        raise ReaderError(f"Unsupported input '{path.name}' (supported: {supported})")

    if suffix in _WORKBOOK_SUFFIXES:
        return WorksheetRowReader.from_path(
            path, sheet_name=sheet_name, skip_blank_lines=settings.skip_blank_lines
        )

    options = CsvRowReader.options_from_settings(settings)
    if suffix == ".tsv":
        options["delimiter"] = "\t"
    return CsvRowReader.from_path(path, encoding=settings.encoding, **options)


__all__ = [
    "CsvRowReader",
    "EndOfInput",
    "RowReader",
    "SequenceRowReader",
    "WorksheetRowReader",
    "open_reader",
]
