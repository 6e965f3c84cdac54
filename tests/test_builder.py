from __future__ import annotations

import dataclasses

import pytest

from csvmapper.builder import ParserBuilder
from csvmapper.exceptions import ConfigError
from csvmapper.models import ParserConfig
from csvmapper.registry import ColumnRegistry

from sample_records import Person, parse_id, parse_name, people_builder


def test_builder_chains_and_builds_frozen_config():
    on_error = lambda row, err: None  # noqa: E731
    config = (
        ParserBuilder(Person)
        .with_headers("id", "name")
        .add_column_parser("id", parse_id)
        .add_column_parser("name", parse_name)
        .terminate_on_parsing_error()
        .on_parse_error(on_error)
        .build()
    )

    assert config.headers == ("id", "name")
    assert config.terminate_on_parsing_error is True
    assert config.on_error is on_error
    assert config.parser_for("id") is parse_id
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.headers = ()  # type: ignore[misc]
    with pytest.raises(TypeError):
        config.column_parsers["age"] = parse_id  # type: ignore[index]


def test_later_registration_overwrites_earlier():
    def other(value: str, person: Person) -> None:
        person.name = value.upper()

    config = people_builder().add_column_parser("name", other).build()

    assert config.parser_for("name") is other


def test_build_snapshots_builder_state():
    builder = people_builder()
    first = builder.build()
    builder.add_column_parser("age", parse_id).terminate_on_parsing_error()
    second = builder.build()

    assert "age" not in first.column_parsers
    assert first.terminate_on_parsing_error is False
    assert "age" in second.column_parsers


def test_column_decorator_registers_parser():
    builder = ParserBuilder(Person)

    @builder.column("name")
    def upper_name(value: str, person: Person) -> None:
        person.name = value.upper()

    assert builder.build().parser_for("name") is upper_name


def test_non_callable_hooks_are_rejected():
    with pytest.raises(ConfigError):
        people_builder().on_start("later")  # type: ignore[arg-type]
    with pytest.raises(ConfigError):
        people_builder().add_column_parser("id", 42)  # type: ignore[arg-type]


def test_config_validates_inputs():
    with pytest.raises(ConfigError):
        ParserConfig(record_factory=None)  # type: ignore[arg-type]
    with pytest.raises(ConfigError):
        ParserConfig(record_factory=Person, headers="id")  # type: ignore[arg-type]
    with pytest.raises(ConfigError):
        ParserConfig(record_factory=Person, column_parsers={"id": "int"})  # type: ignore[dict-item]


def test_config_accepts_registry_and_freezes_it():
    registry: ColumnRegistry[Person] = ColumnRegistry()
    registry.register("id", parse_id)

    config = ParserConfig(record_factory=Person, column_parsers=registry)

    assert config.parser_for("id") is parse_id
    assert registry.frozen
    with pytest.raises(ConfigError):
        registry.register("name", parse_name)


def test_config_copies_caller_mapping():
    parsers = {"id": parse_id}
    config = ParserConfig(record_factory=Person, column_parsers=parsers)
    parsers["name"] = parse_name

    assert "name" not in config.column_parsers
