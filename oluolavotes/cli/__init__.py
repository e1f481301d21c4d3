"""Command-line interface (`oluolavotes`)."""

from .voting import cli, main

__all__ = ["cli", "main"]
