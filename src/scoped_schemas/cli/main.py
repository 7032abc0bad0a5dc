"""Main CLI entry point for scoped-schemas."""  # pragma: no cover

from scoped_schemas.cli.app import app  # pragma: no cover

# Register commands
from scoped_schemas.cli.commands import schema  # noqa: F401  # pragma: no cover

if __name__ == "__main__":  # pragma: no cover
    app()
