"""``stackforge versions`` — list the versions recorded in the manifest."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from stackforge.config import config
from stackforge.core.errors import CorruptManifest
from stackforge.core.manifest_store import JsonManifestStore
from stackforge.models.versioning import iter_records

console = Console()


def versions_cmd(
    product: str = typer.Option(
        None,
        "--product",
        "-p",
        help="Only show versions of this product.",
    ),
    manifest_path: Path = typer.Option(
        None,
        "--manifest",
        "-m",
        help="Path to the version manifest (defaults to STACKFORGE_MANIFEST_PATH).",
    ),
) -> None:
    """List recorded product stack versions."""
    store = JsonManifestStore(manifest_path or config.manifest_path)
    try:
        records = iter_records(store.load(), product)
    except CorruptManifest as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        raise typer.Exit(code=1)

    if not records:
        console.print(f"[dim]No versions recorded in {store.path}.[/dim]")
        return

    table = Table(title=f"Versions in {store.path}")
    table.add_column("Product", style="cyan")
    table.add_column("Stack")
    table.add_column("Version", style="green")
    table.add_column("Digest")
    table.add_column("Validate", justify="center")
    table.add_column("Description", style="dim")

    for record in records:
        validate = "[green]Yes[/green]" if record.validate_template else "[yellow]No[/yellow]"
        table.add_row(
            record.product_name,
            record.stack_id,
            record.version_name,
            record.digest[:16],
            validate,
            record.description,
        )

    console.print(table)
