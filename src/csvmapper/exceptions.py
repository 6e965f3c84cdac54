"""Parser error hierarchy."""

from __future__ import annotations

from typing import Sequence


class CsvMapperError(Exception):
    """Base class for csvmapper exceptions."""


class ConfigError(CsvMapperError):
    """Raised when a parser configuration is invalid or misused."""


class HeaderError(CsvMapperError):
    """Raised when headers cannot be resolved; aborts the whole parse."""


class UnparsableHeaderError(HeaderError):
    """Raised when a header has no registered column parser."""

    def __init__(self, header: str, *, loaded_headers: Sequence[str] = ()) -> None:
        super().__init__(f"the header '{header}' doesn't have an associated parser")
        self.header = header
        self.loaded_headers = tuple(loaded_headers)


class HeaderReadError(HeaderError):
    """Raised when the header row cannot be read from the input."""


class RowError(CsvMapperError):
    """Raised for row problems detected by the engine itself."""


class RowLengthError(RowError):
    """Raised when a row's field count does not match the header count."""

    def __init__(self, *, field_count: int, header_count: int) -> None:
        qualifier = "fewer" if field_count < header_count else "more"
        super().__init__(
            f"row has {qualifier} fields than headers ({field_count} fields, expected {header_count})"
        )
        self.field_count = field_count
        self.header_count = header_count


class ParseError(CsvMapperError):
    """Raised when a row fails while termination-on-error is active."""

    def __init__(self, cause: BaseException, *, row_number: int, row: Sequence[str]) -> None:
        super().__init__(f"couldn't parse row {row_number}: {cause}")
        self.cause = cause
        self.row_number = row_number
        self.row = list(row)


class ReaderError(CsvMapperError):
    """Raised when the row reader fails mid-stream (not end of input)."""

    def __init__(self, message: str, *, row_number: int | None = None) -> None:
        super().__init__(message)
        self.row_number = row_number


class HookError(CsvMapperError):
    """Raised when a lifecycle hook or callback fails."""

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage


__all__ = [
    "CsvMapperError",
    "ConfigError",
    "HeaderError",
    "UnparsableHeaderError",
    "HeaderReadError",
    "RowError",
    "RowLengthError",
    "ParseError",
    "ReaderError",
    "HookError",
]
