"""Test doubles for hooks and readers."""

from __future__ import annotations

from typing import Any

from csvmapper.readers import EndOfInput


class Recorder:
    """Collects calls made to hooks and callbacks."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def hook(self, name: str):
        def _hook(*args: Any) -> None:
            self.calls.append((name, args))

        return _hook

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def count(self, name: str) -> int:
        return self.names().count(name)


class FlakyReader:
    """Returns ``rows`` then fails with ``error`` instead of signalling end of input."""

    def __init__(self, rows: list[list[str]], error: Exception) -> None:
        self._rows = list(rows)
        self._error = error

    def read(self) -> list[str]:
        if self._rows:
            return self._rows.pop(0)
        raise self._error


class ExhaustedReader:
    def read(self) -> list[str]:
        raise EndOfInput()


