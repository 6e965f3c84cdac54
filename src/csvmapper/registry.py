"""Registry container for column parsers."""
from __future__ import annotations

from types import MappingProxyType
from typing import Any, Callable, Dict, Generic, Iterator, Mapping, TypeVar

from csvmapper.exceptions import ConfigError

R = TypeVar("R")

ColumnParser = Callable[[str, R], Any]
"""Receives the raw field text and the in-progress record; raises to reject the value."""


class ColumnRegistry(Generic[R]):
    """Maps column names to their parser functions.

    Registering the same column twice replaces the earlier parser. Once
    :meth:`freeze` is called the registry rejects further registrations.
    """

    def __init__(self) -> None:
        self._parsers: Dict[str, ColumnParser] = {}
        self._frozen = False

    def register(self, column: str, fn: ColumnParser) -> ColumnParser:
        if self._frozen:
            raise ConfigError(f"Registry is frozen; cannot register parser for '{column}'")
        if not isinstance(column, str):
            raise ConfigError(f"Column name must be a string, got {type(column).__name__}")
        if not callable(fn):
            raise ConfigError(f"Parser for column '{column}' must be callable")

        self._parsers[column] = fn
        return fn

    def column(self, name: str) -> Callable[[ColumnParser], ColumnParser]:
        """Decorator form of :meth:`register`."""

        def decorator(fn: ColumnParser) -> ColumnParser:
            self.register(name, fn)
            return fn

        return decorator

    def get(self, column: str) -> ColumnParser | None:
        return self._parsers.get(column)

    def freeze(self) -> Mapping[str, ColumnParser]:
        """Stop accepting registrations and return a read-only name → parser view."""

        self._frozen = True
        return MappingProxyType(dict(self._parsers))

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, column: object) -> bool:
        return column in self._parsers

    def __iter__(self) -> Iterator[str]:
        return iter(self._parsers)

    def __len__(self) -> int:
        return len(self._parsers)


__all__ = ["ColumnParser", "ColumnRegistry"]
