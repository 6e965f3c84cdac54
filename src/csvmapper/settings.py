"""Settings for :mod:`csvmapper`.

Settings are defined in one place (this file) and loaded using `pydantic-settings`.

Supported sources (lowest → highest precedence):
1) `settings.toml` (current working directory, or an explicit list of files)
2) `.env` (current working directory)
3) environment variables (prefix: `CSVMAPPER_`)
4) explicit overrides (`Settings(...)` / CLI)

`settings.toml` is flat: keys map 1:1 to `Settings` fields. A nested
``[csvmapper]`` table is not supported.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import PydanticBaseSettingsSource, TomlConfigSettingsSource

ENV_PREFIX = "CSVMAPPER_"


def _coerce_log_level(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("log_level must be an int or a log level name")

    if isinstance(value, int):
        return value

    text = str(value).strip()
    if not text:
        return logging.INFO

    if text.isdigit():
        return int(text)

    mapped = logging.getLevelNamesMapping().get(text.upper())
    if isinstance(mapped, int):
        return mapped

    raise ValueError(f"Invalid log_level: {value!r}")


def _coerce_supported_file_extensions(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()

    if isinstance(value, (list, tuple)):
        return tuple(str(v).strip() for v in value if str(v).strip())

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return ()
        return tuple(part.strip() for part in text.split(",") if part.strip())

    raise TypeError("supported_file_extensions must be a list/tuple of strings or a comma-separated string")


class Settings(BaseSettings):
    """Runtime settings for readers, the CLI and the table printer."""

    model_config = SettingsConfigDict(
        extra="ignore",
        env_prefix=ENV_PREFIX,
        env_file=".env",
    )

    # Reader dialect
    delimiter: str = Field(default=",")
    quotechar: str = Field(default='"')
    encoding: str = Field(default="utf-8-sig")
    skip_initial_space: bool = Field(default=False)
    skip_blank_lines: bool = Field(default=True)

    # Row error policy used by the CLI when no flag is given
    terminate_on_parsing_error: bool = Field(default=False)

    # Logging
    log_format: Literal["text", "ndjson"] = Field(default="text")
    log_level: int = Field(default=logging.INFO)

    # Table printer
    table_column_width: int = Field(default=25, ge=1)

    # File discovery
    supported_file_extensions: tuple[str, ...] = Field(default=(".csv", ".tsv", ".txt", ".xlsx", ".xlsm"))

    @field_validator("delimiter", "quotechar")
    @classmethod
    def _validate_single_char(cls, value: str) -> str:
        if len(value) != 1:
            raise ValueError("must be a single character")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: Any) -> int:
        return _coerce_log_level(value)

    @field_validator("supported_file_extensions", mode="before")
    @classmethod
    def _validate_supported_file_extensions(cls, value: Any) -> tuple[str, ...]:
        normalized: list[str] = []
        for ext in _coerce_supported_file_extensions(value):
            if not ext.startswith("."):
                ext = f".{ext.lstrip('*.')}"
            normalized.append(ext.lower())
        return tuple(normalized)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        toml_files = None
        if hasattr(init_settings, "init_kwargs"):
            toml_files = init_settings.init_kwargs.pop("_csvmapper_toml_files", None)  # type: ignore[attr-defined]

        if toml_files is None:
            toml_files = [Path.cwd() / "settings.toml"]

        toml_settings = TomlConfigSettingsSource(settings_cls, toml_file=toml_files)

        return (
            init_settings,
            env_settings,
            dotenv_settings,
            toml_settings,
            file_secret_settings,
        )

    @classmethod
    def load(cls, *, cwd: Path | None = None, **overrides: Any) -> "Settings":
        cwd_path = (cwd or Path.cwd()).expanduser().resolve()
        return cls(
            _csvmapper_toml_files=[cwd_path / "settings.toml"],
            _env_file=cwd_path / ".env",
            **overrides,
        )


__all__ = ["ENV_PREFIX", "Settings"]
