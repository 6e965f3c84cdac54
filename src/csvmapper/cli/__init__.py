"""Command-line interface for :mod:`csvmapper`."""

from csvmapper.cli.app import app, main

__all__ = ["app", "main"]
