"""Record types and column parsers shared by the tests."""

from __future__ import annotations

from dataclasses import dataclass

from csvmapper.builder import ParserBuilder
from csvmapper.printer import DataclassRow


@dataclass
class Person(DataclassRow):
    id: int = 0
    name: str = ""


class InvalidId(ValueError):
    pass


def parse_id(value: str, person: Person) -> None:
    if not value.isdigit():
        raise InvalidId(f"invalid id: {value!r}")
    person.id = int(value)


def parse_name(value: str, person: Person) -> None:
    person.name = value


def people_builder(*headers: str) -> ParserBuilder[Person]:
    return (
        ParserBuilder(Person, *headers)
        .add_column_parser("id", parse_id)
        .add_column_parser("name", parse_name)
    )
