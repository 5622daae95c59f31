"""Typer CLI entry point for docquery."""

from __future__ import annotations

import json
from collections import Counter
from pathlib import Path
from typing import Annotated, NoReturn

import typer
from rich.console import Console
from rich.table import Table

from docquery import __version__
from docquery.catalog import Catalog, load_index
from docquery.config import load_config
from docquery.engine import QueryEngine
from docquery.exceptions import DocQueryError

app = typer.Typer(
    name="docquery",
    help="docquery — search documentation item indexes.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()
err_console = Console(stderr=True)

IndexArg = Annotated[
    Path, typer.Argument(help="Index file (.json, or rustdoc search-index.js)")
]


def _error_exit(message: str, hint: str | None = None) -> NoReturn:
    """Print a styled error and exit."""
    console.print(f"[bold red]Error:[/bold red] {message}")
    if hint:
        console.print(f"[dim]Hint: {hint}[/dim]")
    raise typer.Exit(code=1)


def _load_catalog(index: Path) -> Catalog:
    """Load and build the catalog, reporting a one-line summary on stderr."""
    try:
        catalog = Catalog.build(load_index(index))
    except DocQueryError as exc:
        _error_exit(str(exc), hint="Check that the index file is complete and well formed.")
    err_console.print(
        f"[green]Catalog[/green] loaded [bold]{len(catalog)}[/bold] items "
        f"across [bold]{len(catalog.namespaces)}[/bold] namespaces"
    )
    return catalog


@app.command()
def search(
    index: IndexArg,
    query: Annotated[str, typer.Argument(help="Name, path or type query, e.g. 'Context -> Html'")],
    limit: Annotated[
        int, typer.Option("--limit", "-n", min=0, help="Maximum results (0 = config)")
    ] = 0,
    as_json: Annotated[bool, typer.Option("--json", help="Emit JSON lines")] = False,
) -> None:
    """Search an index and print ranked results."""
    catalog = _load_catalog(index)
    try:
        config = load_config(Path.cwd())
        if limit:
            config.max_results = limit
        engine = QueryEngine(catalog, config)
    except DocQueryError as exc:
        _error_exit(str(exc))
    results = engine.query(query) or []

    if as_json:
        for result in results:
            typer.echo(json.dumps(result.to_dict(), ensure_ascii=False))
        return

    if not results:
        console.print(f"[yellow]No matches[/yellow] for {query!r}")
        return

    table = Table(title=f"Results for {query!r}", border_style="cyan", header_style="bold cyan")
    table.add_column("Score", justify="right")
    table.add_column("Kind", style="magenta")
    table.add_column("Item", style="bold")
    table.add_column("Description", overflow="fold")
    for result in results:
        sig = result.item.signature
        label = result.item.qualified_name
        if sig is not None and result.item.kind.is_function_like:
            label += str(sig)
        table.add_row(f"{result.score:.1f}", result.kind, label, result.description)
    console.print(table)


@app.command()
def lookup(
    index: IndexArg,
    namespace: Annotated[str, typer.Argument(help="Namespace identifier")],
    path: Annotated[str, typer.Argument(help="Enclosing path, e.g. 'Widget' or ''")],
    name: Annotated[str, typer.Argument(help="Item name")],
) -> None:
    """Show a single item by namespace, path and name."""
    catalog = _load_catalog(index)
    item = catalog.lookup(namespace, path, name)
    if item is None:
        _error_exit(f"No item {namespace}::{path + '::' if path else ''}{name}")

    table = Table(border_style="cyan", show_header=False)
    table.add_column("Property", style="bold")
    table.add_column("Value")
    table.add_row("Item", item.qualified_name)
    table.add_row("Kind", item.kind.value)
    if item.signature is not None:
        table.add_row("Signature", str(item.signature))
    parent = catalog.parent_of(item)
    if parent is not None:
        table.add_row("Parent", parent.qualified_name)
    children = catalog.children_of(item)
    if children:
        table.add_row("Members", ", ".join(child.name for child in children))
    if item.deprecated:
        table.add_row("Deprecated", "[red]yes[/red]")
    table.add_row("Description", item.description or "[dim]none[/dim]")
    console.print(table)


@app.command()
def stats(index: IndexArg) -> None:
    """Summarize namespaces and item kinds in an index."""
    catalog = _load_catalog(index)

    table = Table(title="Index Stats", border_style="cyan", header_style="bold cyan")
    table.add_column("Namespace", style="bold")
    table.add_column("Items", justify="right")
    table.add_column("Kinds")
    for ns in catalog.namespaces:
        kinds = Counter(item.kind.value for item in ns.items)
        table.add_row(
            ns.name,
            str(len(ns.items)),
            ", ".join(f"{kind} {count}" for kind, count in kinds.most_common()),
        )
    console.print(table)


@app.command()
def version() -> None:
    """Print the docquery version."""
    console.print(f"docquery {__version__}")
