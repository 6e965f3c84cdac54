"""Loading parser configs from importable Python modules.

A config reference has the form ``package.module:attribute``. The attribute may be
a :class:`ParserConfig`, a :class:`ParserBuilder`, or a zero-argument callable
returning either. An optional import root is added to ``sys.path`` only while the
module is imported.
"""

from __future__ import annotations

import importlib
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from csvmapper.builder import ParserBuilder
from csvmapper.exceptions import ConfigError
from csvmapper.models import ParserConfig


@contextmanager
def _sys_path_root(path: Path | None) -> Iterator[None]:
    if path is None:
        yield
        return
    root = str(Path(path).expanduser().resolve())
    original = list(sys.path)
    try:
        if root not in sys.path:
            sys.path.insert(0, root)
        yield
    finally:
        sys.path[:] = original


def split_reference(reference: str) -> tuple[str, str]:
    module_name, sep, attr = reference.strip().partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError(f"Config reference must look like 'package.module:attribute', got {reference!r}")
    return module_name, attr


def _coerce_config(value: Any, *, reference: str) -> ParserConfig:
    if isinstance(value, ParserBuilder):
        return value.build()
    if isinstance(value, ParserConfig):
        return value
    raise ConfigError(f"{reference} must provide a ParserConfig or ParserBuilder, got {type(value).__name__}")


def load_config(reference: str, *, import_root: Path | None = None) -> ParserConfig:
    """Import ``reference`` and return the parser config it provides."""

    module_name, attr = split_reference(reference)
    with _sys_path_root(import_root):
        importlib.invalidate_caches()
        try:
            module = importlib.import_module(module_name)
        except ImportError as exc:
            raise ConfigError(f"Could not import config module '{module_name}': {exc}") from exc

    target: Any = module
    for part in attr.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise ConfigError(f"Config module '{module_name}' has no attribute '{attr}'") from exc

    if isinstance(target, (ParserBuilder, ParserConfig)):
        return _coerce_config(target, reference=reference)
    if callable(target):
        return _coerce_config(target(), reference=reference)
    return _coerce_config(target, reference=reference)


__all__ = ["load_config", "split_reference"]
