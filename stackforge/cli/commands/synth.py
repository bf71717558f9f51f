"""``stackforge synth PRODUCT_FILE`` — synthesize a product from a JSON description.

The product file names the product, its stacks (with their templates) and
the versions to resolve::

    {
      "product": "web-app",
      "owner": "platform-team",
      "stacks": {
        "WebStack": {"asset_bucket": "web-assets", "template": {"Resources": {...}}}
      },
      "versions": [
        {"name": "v1", "stack": "WebStack", "source": "history"},
        {"name": "v2", "stack": "WebStack", "source": "snapshot"},
        {"name": "v3", "stack": "WebStack", "locked": true}
      ]
    }
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal, Optional

import typer
from pydantic import BaseModel, ConfigDict, ValidationError
from rich.console import Console
from rich.table import Table

from stackforge.config import StackforgeConfig
from stackforge.core.errors import StackforgeError
from stackforge.core.renderer import ProductStack
from stackforge.core.synthesizer import ProductSynthesizer
from stackforge.history import ProductStackHistory
from stackforge.models.declarations import CachedVersion, FreshVersion

console = Console()


class StackSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    path_id: str | None = None
    asset_bucket: str | None = None
    template: dict[str, Any]


class VersionSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    stack: str
    source: Literal["fresh", "history", "snapshot"] = "fresh"
    description: str | None = None
    validate_template: bool | None = None
    locked: bool | None = None


class ProductFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    product: str
    owner: str
    description: str = ""
    stacks: dict[str, StackSpec]
    versions: list[VersionSpec]


def build_declarations(
    spec: ProductFile, snapshot_directory: Path
) -> list[FreshVersion | CachedVersion]:
    """Turn a parsed product file into version declarations."""
    stacks: dict[str, ProductStack] = {}
    for stack_id, stack_spec in spec.stacks.items():
        stacks[stack_id] = ProductStack.from_template(
            stack_id,
            stack_spec.template,
            path_id=stack_spec.path_id,
            asset_bucket=stack_spec.asset_bucket,
        )

    declarations: list[FreshVersion | CachedVersion] = []
    for version in spec.versions:
        stack = stacks.get(version.stack)
        if stack is None:
            raise typer.BadParameter(
                f"Version '{version.name}' refers to unknown stack '{version.stack}'"
            )
        if version.source == "history":
            declarations.append(
                CachedVersion(
                    version_name=version.name,
                    stack=stack,
                    description=version.description,
                    validate_template=version.validate_template,
                )
            )
        elif version.source == "snapshot":
            history = ProductStackHistory(
                stack,
                version.name,
                True,
                product_name=spec.product,
                snapshot_directory=snapshot_directory,
            )
            declarations.append(
                history.version_from_snapshot(
                    version.name,
                    description=version.description,
                    validate_template=version.validate_template,
                )
            )
        else:
            declarations.append(
                FreshVersion(
                    version_name=version.name,
                    stack=stack,
                    description=version.description,
                    validate_template=version.validate_template,
                    locked=version.locked,
                    snapshot_directory=snapshot_directory,
                )
            )
    return declarations


def synth_cmd(
    product_file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="JSON file describing the product, its stacks and versions.",
    ),
    record: Optional[bool] = typer.Option(
        None,
        "--record/--no-record",
        help="Record fresh versions in the manifest (defaults to STACKFORGE_RECORD_FRESH_VERSIONS).",
    ),
) -> None:
    """Resolve every declared version and write the product definition."""
    try:
        spec = ProductFile.model_validate(json.loads(product_file.read_text(encoding="utf-8")))
    except (ValueError, ValidationError) as exc:
        console.print(f"[bold red]Invalid product file {product_file}:[/bold red] {exc}")
        raise typer.Exit(code=1)

    config = StackforgeConfig()
    try:
        declarations = build_declarations(spec, config.snapshot_directory)
    except ValueError as exc:
        console.print(f"[bold red]Invalid product file {product_file}:[/bold red] {exc}")
        raise typer.Exit(code=1)

    synthesizer = ProductSynthesizer(config)
    try:
        definition = synthesizer.synthesize(
            spec.product,
            spec.owner,
            declarations,
            description=spec.description,
            record_fresh=record,
        )
    except StackforgeError as exc:
        console.print(f"[bold red]Synthesis failed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    output = synthesizer.write_definition(definition)

    table = Table(title=f"Product {definition.product_name}")
    table.add_column("Version", style="green")
    table.add_column("Stack", style="cyan")
    table.add_column("Outcome")
    table.add_column("Template URL", style="dim")
    for artifact in definition.provisioning_artifacts:
        table.add_row(
            artifact.version_name,
            artifact.stack_id,
            artifact.outcome.value,
            artifact.template_url,
        )
    console.print(table)
    console.print(f"[bold]Product definition:[/bold] {output}")
