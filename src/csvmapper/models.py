"""Configuration and result types for the parser.

These types are small and explicit:
- ``ParserConfig`` is the caller's immutable configuration; the engine never mutates it.
- ``ParseResult`` is the structured outcome returned by :meth:`CsvParser.run`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Generic, Mapping, Sequence, TypeVar

from csvmapper.exceptions import ConfigError
from csvmapper.registry import ColumnParser, ColumnRegistry

R = TypeVar("R")

OnErrorFunc = Callable[[list[str], BaseException], Any]
AfterParsingRowFunc = Callable[[R], Any]
LifecycleHook = Callable[[], Any]


class HookName(str, Enum):
    ON_START = "on_start"
    AFTER_EACH_ROW = "after_each_row"
    ON_ERROR = "on_error"
    ON_FINISH = "on_finish"


@dataclass(frozen=True)
class ParserConfig(Generic[R]):
    """Everything a :class:`~csvmapper.engine.CsvParser` needs besides its reader."""

    record_factory: Callable[[], R]
    column_parsers: Mapping[str, ColumnParser] | ColumnRegistry = field(default_factory=dict)
    headers: tuple[str, ...] = ()
    terminate_on_parsing_error: bool = False
    on_error: OnErrorFunc | None = None
    after_each_row: AfterParsingRowFunc | None = None
    on_start: LifecycleHook | None = None
    on_finish: LifecycleHook | None = None

    def __post_init__(self) -> None:
        if not callable(self.record_factory):
            raise ConfigError("record_factory must be a zero-argument callable")
        if isinstance(self.headers, str):
            raise ConfigError("headers must be a sequence of column names, not a string")
        parsers = self.column_parsers
        if isinstance(parsers, ColumnRegistry):
            parsers = parsers.freeze()
        for name, fn in parsers.items():
            if not callable(fn):
                raise ConfigError(f"Parser for column '{name}' must be callable")
        # Snapshot caller-owned containers so later mutation cannot leak in.
        object.__setattr__(self, "column_parsers", MappingProxyType(dict(parsers)))
        object.__setattr__(self, "headers", tuple(self.headers))

    @property
    def has_explicit_headers(self) -> bool:
        return len(self.headers) > 0

    def parser_for(self, header: str) -> ColumnParser | None:
        return self.column_parsers.get(header)


class ParseStatus(str, Enum):
    """Overall parse outcome."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ParseErrorCode(str, Enum):
    """Categorization for failures surfaced by :meth:`CsvParser.run`."""

    CONFIG_ERROR = "config_error"
    HEADER_ERROR = "header_error"
    PARSE_ERROR = "parse_error"
    READER_ERROR = "reader_error"
    HOOK_ERROR = "hook_error"
    UNKNOWN_ERROR = "unknown_error"


@dataclass(frozen=True)
class ParseFailure:
    """Structured error info returned to callers."""

    code: ParseErrorCode
    message: str
    exception: BaseException | None = None


@dataclass(frozen=True)
class ParseResult(Generic[R]):
    """Outcome summary for a parse."""

    status: ParseStatus
    records: Sequence[R]
    error: ParseFailure | None
    rows_read: int = 0
    rows_skipped: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def ok(self) -> bool:
        return self.status == ParseStatus.SUCCEEDED


__all__ = [
    "AfterParsingRowFunc",
    "HookName",
    "LifecycleHook",
    "OnErrorFunc",
    "ParseErrorCode",
    "ParseFailure",
    "ParseResult",
    "ParseStatus",
    "ParserConfig",
]
