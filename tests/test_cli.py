from __future__ import annotations

import sys
import textwrap
import uuid

import openpyxl
import pytest
from typer.testing import CliRunner

from csvmapper import __version__
from csvmapper.cli.app import app

runner = CliRunner()

CONFIG_MODULE = textwrap.dedent(
    """
    from dataclasses import dataclass

    from csvmapper import DataclassRow, ParserBuilder


    @dataclass
    class Person(DataclassRow):
        id: int = 0
        name: str = ""


    def parse_id(value, person):
        person.id = int(value)


    def parse_name(value, person):
        person.name = value


    config = (
        ParserBuilder(Person)
        .add_column_parser("id", parse_id)
        .add_column_parser("name", parse_name)
        .build()
    )
    """
)


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    name = f"people_cfg_{uuid.uuid4().hex}"
    (tmp_path / f"{name}.py").write_text(CONFIG_MODULE, encoding="utf-8")
    yield tmp_path, f"{name}:config"
    sys.modules.pop(name, None)


def _parse(root, ref, path, *extra):
    return runner.invoke(
        app,
        ["parse", "--input", str(path), "--config", ref, "--path", str(root), "--quiet", *extra],
    )


def test_parse_prints_table_and_summary(workspace):
    root, ref = workspace
    path = root / "people.csv"
    path.write_text("id,name\n1,Ann\nx,Bad\n2,Bob\n", encoding="utf-8")

    result = _parse(root, ref, path)

    assert result.exit_code == 0, result.output
    assert "|-> (" + "1".ljust(25) + "Ann)" in result.output
    assert "|-> (" + "2".ljust(25) + "Bob)" in result.output
    assert "2 records parsed, 1 rows skipped (succeeded)" in result.output


def test_parse_terminate_on_error_fails(workspace):
    root, ref = workspace
    path = root / "people.csv"
    path.write_text("id,name\n1,Ann\nx,Bad\n", encoding="utf-8")

    result = _parse(root, ref, path, "--terminate-on-error")

    assert result.exit_code == 1
    assert "parse_error" in result.output
    assert "|-> (" not in result.output


def test_parse_terminate_default_from_settings(workspace):
    root, ref = workspace
    (root / "settings.toml").write_text("terminate_on_parsing_error = true\n", encoding="utf-8")
    path = root / "people.csv"
    path.write_text("id,name\nx,Bad\n", encoding="utf-8")

    assert _parse(root, ref, path).exit_code == 1
    assert _parse(root, ref, path, "--skip-errors").exit_code == 0


def test_parse_with_explicit_headers_and_delimiter(workspace):
    root, ref = workspace
    path = root / "people.txt"
    path.write_text("7;Zed\n", encoding="utf-8")

    result = _parse(root, ref, path, "-H", "id", "-H", "name", "--delimiter", ";")

    assert result.exit_code == 0, result.output
    assert "|-> (" + "7".ljust(25) + "Zed)" in result.output


def test_parse_reads_worksheets(workspace):
    root, ref = workspace
    path = root / "people.xlsx"
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = "Staff"
    sheet.append(["id", "name"])
    sheet.append([3, "Cat"])
    workbook.save(path)

    result = _parse(root, ref, path, "--sheet", "Staff")

    assert result.exit_code == 0, result.output
    assert "|-> (" + "3".ljust(25) + "Cat)" in result.output


def test_parse_reports_unknown_header(workspace):
    root, ref = workspace
    path = root / "people.csv"
    path.write_text("id,email\n1,a@example.com\n", encoding="utf-8")

    result = _parse(root, ref, path)

    assert result.exit_code == 1
    assert "header_error" in result.output
    assert "email" in result.output


def test_parse_reports_bad_config(workspace):
    root, _ref = workspace
    path = root / "people.csv"
    path.write_text("id,name\n", encoding="utf-8")

    result = _parse(root, "missing_module_for_cli:config", path)

    assert result.exit_code == 1
    assert "config_error" in result.output


def test_parse_rejects_unsupported_input(workspace):
    root, ref = workspace
    path = root / "people.json"
    path.write_text("[]", encoding="utf-8")

    result = _parse(root, ref, path)

    assert result.exit_code == 2


def test_headers_command_prints_trimmed_names(workspace):
    root, _ref = workspace
    path = root / "people.csv"
    path.write_text(" id , name \n1,Ann\n", encoding="utf-8")

    result = runner.invoke(app, ["headers", "--input", str(path)])

    assert result.exit_code == 0, result.output
    assert result.output.splitlines() == ["id", "name"]


def test_version_command_and_flag():
    assert runner.invoke(app, ["version"]).output.strip() == __version__
    assert runner.invoke(app, ["--version"]).output.strip() == __version__


def test_parse_reports_corrupt_workbook(workspace):
    root, ref = workspace
    path = root / "people.xlsx"
    path.write_bytes(b"not a zip file")

    result = _parse(root, ref, path)

    assert result.exit_code == 1
    assert "reader_error" in result.output
    assert result.exception is None or isinstance(result.exception, SystemExit)


def test_headers_reports_undecodable_input(workspace):
    root, _ref = workspace
    path = root / "people.csv"
    path.write_bytes(b"id,na\xffme\n")

    result = runner.invoke(app, ["headers", "--input", str(path)])

    assert result.exit_code == 1
    assert "reader_error" in result.output
    assert "couldn't read headers" in result.output


def test_parse_debug_logs_effective_settings(workspace):
    root, ref = workspace
    path = root / "people.csv"
    path.write_text("id,name\n1,Ann\n", encoding="utf-8")

    result = runner.invoke(
        app,
        ["parse", "--input", str(path), "--config", ref, "--path", str(root), "--debug", "--log-format", "ndjson"],
    )

    assert result.exit_code == 0, result.output
    assert '"event":"csvmapper.settings.effective"' in result.output
