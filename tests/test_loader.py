from __future__ import annotations

import sys
import textwrap
import uuid

import pytest

from csvmapper.exceptions import ConfigError
from csvmapper.loader import load_config, split_reference
from csvmapper.models import ParserConfig

CONFIG_MODULE = textwrap.dedent(
    """
    from dataclasses import dataclass

    from csvmapper import ParserBuilder


    @dataclass
    class City:
        name: str = ""


    def parse_name(value, city):
        city.name = value.title()


    builder = ParserBuilder(City).add_column_parser("name", parse_name)
    config = builder.build()


    def make_config():
        return builder.terminate_on_parsing_error().build()


    class Namespace:
        config = config


    not_a_config = 42
    """
)


@pytest.fixture
def config_module(tmp_path):
    name = f"cfg_{uuid.uuid4().hex}"
    (tmp_path / f"{name}.py").write_text(CONFIG_MODULE, encoding="utf-8")
    yield name, tmp_path
    sys.modules.pop(name, None)


@pytest.mark.parametrize("attr", ["config", "builder", "make_config", "Namespace.config"])
def test_load_config_accepts_configs_builders_and_factories(config_module, attr):
    name, root = config_module

    config = load_config(f"{name}:{attr}", import_root=root)

    assert isinstance(config, ParserConfig)
    assert list(config.column_parsers) == ["name"]


def test_import_root_is_only_added_temporarily(config_module):
    name, root = config_module
    before = list(sys.path)

    load_config(f"{name}:config", import_root=root)

    assert sys.path == before


def test_factory_result_is_used(config_module):
    name, root = config_module

    assert load_config(f"{name}:make_config", import_root=root).terminate_on_parsing_error is True


@pytest.mark.parametrize(
    "reference, match",
    [
        ("missing_module_{uid}:config", "Could not import"),
        ("{module}:nope", "has no attribute"),
        ("{module}:not_a_config", "must provide a ParserConfig"),
    ],
)
def test_load_config_errors(config_module, reference, match):
    name, root = config_module
    ref = reference.format(uid=uuid.uuid4().hex, module=name)

    with pytest.raises(ConfigError, match=match):
        load_config(ref, import_root=root)


@pytest.mark.parametrize("reference", ["no_colon", ":attr", "module:", ""])
def test_split_reference_rejects_malformed(reference):
    with pytest.raises(ConfigError):
        split_reference(reference)


def test_split_reference():
    assert split_reference(" pkg.mod:attr.sub ") == ("pkg.mod", "attr.sub")
