"""Schema query CLI commands for scoped-schemas.

Exposes the provider's queries from the shell:
`scoped-schemas scopes`, `namespaces`, `schemas`, `resolve`, `locations`, `prefix`.
"""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from scoped_schemas.cli.app import app
from scoped_schemas.config import ConfigManager
from scoped_schemas.provider import SchemaProvider, create_provider
from scoped_schemas.scope import DocumentRef

console = Console()

ScopeOption = Annotated[
    Optional[str], typer.Option("--scope", "-s", help="Scope to resolve in")
]
DocumentOption = Annotated[
    Optional[Path],
    typer.Option("--document", "-d", help="Document whose scope is used (default: current folder)"),
]


def _load_provider(scope: Optional[str] = None) -> SchemaProvider:
    """Build a provider from config, checking the requested scope exists."""
    provider = create_provider(ConfigManager().load_config())
    if scope is not None and scope not in provider.registry:
        typer.echo(f"No scope found named: {scope}", err=True)
        raise typer.Exit(1)
    return provider


def _document(document: Optional[Path]) -> DocumentRef:
    if document is not None:
        return DocumentRef(path=document.absolute())
    return DocumentRef(folder=Path.cwd())


# --- Scopes ---


@app.command()
def scopes():
    """List configured scopes and their roots."""
    config = ConfigManager().load_config()

    if not config.scopes:
        console.print("[yellow]No scopes configured.[/yellow]")
        return

    table = Table(title="Scopes")
    table.add_column("Name", style="cyan")
    table.add_column("Content Roots")
    table.add_column("Dependency Roots")

    for name, scope_config in config.scopes.items():
        table.add_row(
            name,
            "\n".join(str(p) for p in scope_config.content_roots),
            "\n".join(str(p) for p in scope_config.dependency_roots),
        )

    console.print(table)


# --- Namespaces ---


@app.command()
def namespaces(
    scope: ScopeOption = None,
    document: DocumentOption = None,
    tag: Annotated[
        Optional[str], typer.Option("--tag", "-t", help="Only namespaces declaring this element")
    ] = None,
):
    """List namespaces available in a scope."""
    provider = _load_provider(scope)
    found = provider.available_namespaces(_document(document), tag_filter=tag, scope_hint=scope)

    if not found:
        console.print("[yellow]No namespaces found.[/yellow]")
        raise typer.Exit(1)

    for namespace in sorted(found):
        typer.echo(namespace)


@app.command("schemas")
def list_schemas(
    scope: Annotated[str, typer.Argument(help="Scope name")],
):
    """Show every schema discovered for a scope."""
    provider = _load_provider(scope)
    found = provider.schemas(scope)

    if not found:
        console.print(f"[yellow]No schemas found in scope {scope}.[/yellow]")
        raise typer.Exit(1)

    table = Table(title=f"Schemas: {scope}")
    table.add_column("Location", style="cyan")
    table.add_column("Namespace")
    table.add_column("Prefix", justify="center")
    table.add_column("Source", style="dim")

    for schema in found:
        table.add_row(
            schema.location,
            schema.namespace or "",
            schema.namespace_prefix or "",
            schema.canonical_location,
        )

    console.print(table)


# --- Single-reference queries ---


@app.command()
def resolve(
    ref: Annotated[str, typer.Argument(help="Namespace URI or schema location")],
    scope: ScopeOption = None,
    document: DocumentOption = None,
    content: Annotated[
        bool, typer.Option("--content", "-c", help="Print the materialized schema text")
    ] = False,
):
    """Resolve a namespace or location to a schema."""
    provider = _load_provider(scope)
    resolved = provider.get_schema(ref, scope_hint=scope, base_document=_document(document))

    if resolved is None:
        console.print(f"[yellow]Could not resolve:[/yellow] {ref}")
        raise typer.Exit(1)

    if content:
        typer.echo(resolved.text)
        return

    schema = resolved.schema
    typer.echo(f"Location:  {schema.location}")
    typer.echo(f"Namespace: {schema.namespace or '-'}")
    typer.echo(f"Prefix:    {schema.namespace_prefix or '-'}")
    typer.echo(f"Source:    {schema.canonical_location}")


@app.command()
def locations(
    namespace: Annotated[str, typer.Argument(help="Namespace URI")],
    scope: ScopeOption = None,
    document: DocumentOption = None,
):
    """Show the advertised locations for a namespace."""
    provider = _load_provider(scope)
    found = provider.locations(namespace, _document(document), scope_hint=scope)

    if not found:
        console.print(f"[yellow]No schema defines namespace:[/yellow] {namespace}")
        raise typer.Exit(1)

    for location in sorted(found):
        typer.echo(location)


@app.command()
def prefix(
    namespace: Annotated[str, typer.Argument(help="Namespace URI")],
    scope: ScopeOption = None,
    document: DocumentOption = None,
):
    """Show the default prefix for a namespace."""
    provider = _load_provider(scope)
    found = provider.default_prefix(namespace, _document(document), scope_hint=scope)

    if found is None:
        console.print(f"[yellow]No default prefix for namespace:[/yellow] {namespace}")
        raise typer.Exit(1)

    typer.echo(found)
