"""Public API for :mod:`csvmapper`."""

from importlib import metadata
from pathlib import Path
from typing import TYPE_CHECKING
import tomllib

if TYPE_CHECKING:
    from csvmapper.builder import ParserBuilder
    from csvmapper.engine import CsvParser
    from csvmapper.models import ParseResult, ParseStatus, ParserConfig
    from csvmapper.printer import DataclassRow, TableRow, parse_to_string
    from csvmapper.readers import CsvRowReader, EndOfInput, SequenceRowReader, WorksheetRowReader
    from csvmapper.registry import ColumnRegistry
    from csvmapper.settings import Settings


def _pyproject_version() -> str | None:
    pyproject = Path(__file__).resolve().parents[2] / "pyproject.toml"
    try:
        parsed = tomllib.loads(pyproject.read_text(encoding="utf-8"))
        version = parsed.get("project", {}).get("version")
        if isinstance(version, str) and version:
            return version
    except (FileNotFoundError, OSError, tomllib.TOMLDecodeError):
        return None
    return None


def _resolve_version() -> str:
    # Prefer the local pyproject when running from a source checkout/editable install.
    version = _pyproject_version()
    if version is not None:
        return version

    try:
        return metadata.version("csvmapper")
    except metadata.PackageNotFoundError:  # pragma: no cover
        return "unknown"


__version__ = _resolve_version()

_EXPORTS = {
    "CsvParser": ("csvmapper.engine", "CsvParser"),
    "ParserBuilder": ("csvmapper.builder", "ParserBuilder"),
    "ParserConfig": ("csvmapper.models", "ParserConfig"),
    "ParseResult": ("csvmapper.models", "ParseResult"),
    "ParseStatus": ("csvmapper.models", "ParseStatus"),
    "ColumnRegistry": ("csvmapper.registry", "ColumnRegistry"),
    "CsvRowReader": ("csvmapper.readers", "CsvRowReader"),
    "EndOfInput": ("csvmapper.readers", "EndOfInput"),
    "SequenceRowReader": ("csvmapper.readers", "SequenceRowReader"),
    "WorksheetRowReader": ("csvmapper.readers", "WorksheetRowReader"),
    "DataclassRow": ("csvmapper.printer", "DataclassRow"),
    "TableRow": ("csvmapper.printer", "TableRow"),
    "parse_to_string": ("csvmapper.printer", "parse_to_string"),
    "Settings": ("csvmapper.settings", "Settings"),
}


def __getattr__(name: str):
    target = _EXPORTS.get(name)
    if target is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module_name, attr_name = target
    module = __import__(module_name, fromlist=[attr_name])
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(list(globals().keys()) + list(_EXPORTS.keys()))


__all__ = [
    "ColumnRegistry",
    "CsvParser",
    "CsvRowReader",
    "DataclassRow",
    "EndOfInput",
    "ParseResult",
    "ParseStatus",
    "ParserBuilder",
    "ParserConfig",
    "SequenceRowReader",
    "Settings",
    "TableRow",
    "WorksheetRowReader",
    "parse_to_string",
    "__version__",
]
