"""Staged builder producing an immutable :class:`~csvmapper.models.ParserConfig`."""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

from csvmapper.exceptions import ConfigError
from csvmapper.models import AfterParsingRowFunc, LifecycleHook, OnErrorFunc, ParserConfig
from csvmapper.registry import ColumnParser, ColumnRegistry

R = TypeVar("R")


class ParserBuilder(Generic[R]):
    """Collects column parsers, hooks and the error policy for one record type.

    Each setter returns the builder so calls can be chained; :meth:`build`
    snapshots the current state into a frozen config, so one builder can
    produce several independent configs.
    """

    def __init__(self, record_factory: Callable[[], R], *headers: str) -> None:
        self._record_factory = record_factory
        self._headers: tuple[str, ...] = tuple(headers)
        self._registry: ColumnRegistry[R] = ColumnRegistry()
        self._terminate_on_parsing_error = False
        self._on_error: OnErrorFunc | None = None
        self._after_each_row: AfterParsingRowFunc | None = None
        self._on_start: LifecycleHook | None = None
        self._on_finish: LifecycleHook | None = None

    def with_headers(self, *headers: str) -> "ParserBuilder[R]":
        """Use these headers instead of reading them from the first input row."""
        self._headers = tuple(headers)
        return self

    def add_column_parser(self, header_name: str, parser: ColumnParser) -> "ParserBuilder[R]":
        self._registry.register(header_name, parser)
        return self

    def column(self, header_name: str) -> Callable[[ColumnParser], ColumnParser]:
        return self._registry.column(header_name)

    def terminate_on_parsing_error(self, flag: bool = True) -> "ParserBuilder[R]":
        self._terminate_on_parsing_error = flag
        return self

    def on_parse_error(self, callback: OnErrorFunc) -> "ParserBuilder[R]":
        self._on_error = _require_callable(callback, "on_parse_error")
        return self

    def after_each_parsing_hook(self, handler: AfterParsingRowFunc) -> "ParserBuilder[R]":
        self._after_each_row = _require_callable(handler, "after_each_parsing_hook")
        return self

    def on_start(self, handler: LifecycleHook) -> "ParserBuilder[R]":
        self._on_start = _require_callable(handler, "on_start")
        return self

    def on_finish(self, handler: LifecycleHook) -> "ParserBuilder[R]":
        self._on_finish = _require_callable(handler, "on_finish")
        return self

    @property
    def registry(self) -> ColumnRegistry[R]:
        return self._registry

    def build(self) -> ParserConfig[R]:
        parsers = {name: self._registry.get(name) for name in self._registry}
        return ParserConfig(
            record_factory=self._record_factory,
            column_parsers=parsers,
            headers=self._headers,
            terminate_on_parsing_error=self._terminate_on_parsing_error,
            on_error=self._on_error,
            after_each_row=self._after_each_row,
            on_start=self._on_start,
            on_finish=self._on_finish,
        )


def _require_callable(fn, label: str):
    if not callable(fn):
        raise ConfigError(f"{label} expects a callable, got {type(fn).__name__}")
    return fn


__all__ = ["ParserBuilder"]
