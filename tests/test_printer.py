from __future__ import annotations

from dataclasses import dataclass

import pytest

from csvmapper.printer import DataclassRow, TableRow, parse_to_string

from sample_records import Person


@dataclass
class Wide(DataclassRow):
    a: str = ""
    b: str = ""
    c: str = ""


def test_renders_rule_and_one_line_per_record():
    text = parse_to_string([Person(1, "Alice"), Person(2, "Bob")])

    assert text.splitlines() == [
        "_" * 50,
        "|-> (" + "1".ljust(25) + "Alice)",
        "|-> (" + "2".ljust(25) + "Bob)",
    ]


def test_values_are_truncated_to_column_width():
    text = parse_to_string([Wide("x" * 30, "y" * 30, "z" * 30)], column_width=10)

    assert text.splitlines()[0] == "_" * 70
    assert text.splitlines()[1] == "|-> (" + "x" * 10 + "y" * 10 + "z" * 10 + ")"


def test_empty_input_renders_nothing():
    assert parse_to_string([]) == ""


def test_records_must_expose_table_fields():
    with pytest.raises(TypeError, match="table_fields"):
        parse_to_string([object()])


def test_column_width_must_be_positive():
    with pytest.raises(ValueError):
        parse_to_string([Person()], column_width=0)


def test_custom_table_row():
    class Pair:
        def table_fields(self):
            return [("left", "L"), ("right", "R")]

    assert isinstance(Pair(), TableRow)
    assert parse_to_string([Pair()], column_width=3).splitlines()[1] == "|-> (L  R)"


def test_dataclass_row_requires_dataclass():
    class NotADataclass(DataclassRow):
        pass

    with pytest.raises(TypeError, match="must be a dataclass"):
        NotADataclass().table_fields()
