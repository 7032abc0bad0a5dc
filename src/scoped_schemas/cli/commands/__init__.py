"""CLI commands for scoped-schemas."""

from . import schema

__all__ = [
    "schema",
]
