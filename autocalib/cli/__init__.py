"""Command-line interface module."""

from autocalib.cli.arguments import parse_arguments

__all__ = ["parse_arguments"]
