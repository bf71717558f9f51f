"""``stackforge snapshots`` — list template snapshots and their digests."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from stackforge.config import config
from stackforge.core.hasher import template_digest
from stackforge.core.snapshot_guard import SNAPSHOT_SUFFIX, SnapshotGuard

console = Console()


def snapshots_cmd(
    directory: Path = typer.Option(
        None,
        "--directory",
        "-d",
        help="Snapshot directory (defaults to STACKFORGE_SNAPSHOT_DIRECTORY).",
    ),
) -> None:
    """List snapshotted product stack versions."""
    guard = SnapshotGuard(directory or config.snapshot_directory)
    paths = guard.list_snapshots()
    if not paths:
        console.print(f"[dim]No snapshots in {guard.directory}.[/dim]")
        return

    table = Table(title=f"Snapshots in {guard.directory}")
    table.add_column("Stack path", style="cyan")
    table.add_column("Stack")
    table.add_column("Version", style="green")
    table.add_column("Digest")
    table.add_column("Bytes", justify="right")

    for path in paths:
        data = path.read_bytes()
        # {stack_path_id}.{stack_id}.{version_name}; version names may contain dots
        parts = path.name.removesuffix(SNAPSHOT_SUFFIX).split(".", 2)
        if len(parts) != 3:
            parts = [path.name, "", ""]
        table.add_row(*parts, template_digest(data)[:16], str(len(data)))

    console.print(table)
