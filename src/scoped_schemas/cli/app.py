from typing import Optional

import typer

from scoped_schemas.config import ConfigManager
from scoped_schemas.utils import setup_logging


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:  # pragma: no cover
        import scoped_schemas

        typer.echo(f"scoped-schemas version: {scoped_schemas.__version__}")
        raise typer.Exit()


app = typer.Typer(name="scoped-schemas")


@app.callback()
def app_callback(
    ctx: typer.Context,
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Override the configured log level.",
        envvar="SCOPED_SCHEMAS_LOG_LEVEL",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """scoped-schemas - resolve XML schema references per project scope."""

    # Configure logging for every command unless --version was specified
    if not version and ctx.invoked_subcommand is not None:
        config = ConfigManager().load_config()
        setup_logging((log_level or config.log_level).upper())
