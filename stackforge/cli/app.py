"""Main Typer application — imports and registers all CLI commands.

Entry point: ``stackforge`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from stackforge.cli.commands.snapshots import snapshots_cmd
from stackforge.cli.commands.synth import synth_cmd
from stackforge.cli.commands.versions import versions_cmd
from stackforge.config import config

app = typer.Typer(
    name="stackforge",
    help="Stackforge: content-addressed product stack templates with version history.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to STACKFORGE_LOG_LEVEL).",
    ),
) -> None:
    """Configure logging for every subcommand."""
    logging.basicConfig(
        level=(log_level or config.log_level).upper(),
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


# Register subcommands
app.command(name="synth", help="Synthesize a product from a JSON description.")(synth_cmd)
app.command(name="versions", help="List versions recorded in the manifest.")(versions_cmd)
app.command(name="snapshots", help="List template snapshots.")(snapshots_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
