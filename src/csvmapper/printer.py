"""Debug table rendering for parsed records."""

from __future__ import annotations

import dataclasses
from typing import Iterable, Protocol, Sequence, runtime_checkable

DEFAULT_COLUMN_WIDTH = 25
_RULE_CHARS_PER_FIELD = 20
_RULE_PADDING = 10


@runtime_checkable
class TableRow(Protocol):
    """Records that can be printed expose their fields as ordered ``(name, text)`` pairs."""

    def table_fields(self) -> Sequence[tuple[str, str]]: ...


class DataclassRow:
    """Mixin implementing :class:`TableRow` for dataclasses, in declaration order."""

    def table_fields(self) -> Sequence[tuple[str, str]]:
        if not dataclasses.is_dataclass(self):
            raise TypeError(f"{type(self).__name__} must be a dataclass to use DataclassRow")
        return [(f.name, str(getattr(self, f.name))) for f in dataclasses.fields(self)]


def _fields_of(record: object) -> Sequence[tuple[str, str]]:
    if not isinstance(record, TableRow):
        raise TypeError(f"{type(record).__name__} does not implement table_fields()")
    return record.table_fields()


def _render_line(values: Sequence[str], column_width: int) -> str:
    cells: list[str] = []
    for index, text in enumerate(values):
        text = text[:column_width]
        cells.append(text if index == len(values) - 1 else text.ljust(column_width))
    return "|-> (" + "".join(cells) + ")"


def parse_to_string(records: Iterable[object], *, column_width: int = DEFAULT_COLUMN_WIDTH) -> str:
    """Render ``records`` as a block: a rule line, then one ``|-> (...)`` line per record.

    The rule width is derived from the first record's field count.
    """

    if column_width < 1:
        raise ValueError("column_width must be positive")

    lines: list[str] = []
    for record in records:
        values = [text for _name, text in _fields_of(record)]
        if not lines:
            lines.append("_" * (_RULE_CHARS_PER_FIELD * len(values) + _RULE_PADDING))
        lines.append(_render_line(values, column_width))
    return "\n".join(lines)


__all__ = ["DEFAULT_COLUMN_WIDTH", "DataclassRow", "TableRow", "parse_to_string"]
