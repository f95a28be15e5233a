"""CLI command modules for strictify."""

from strictify.command.check import CheckCommand

__all__ = ["CheckCommand"]
