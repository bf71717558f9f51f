"""Template renderers — turn a product stack into a template document.

``ProductStack`` is a deliberately small resource graph: it keeps the
sections of a template in insertion order and serializes them with
:func:`render_template_json`. ``SnapshotTemplate`` replays the bytes of a
previously written snapshot verbatim, so a version rebuilt from its
snapshot hashes to exactly the digest it had when it was first built.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

from stackforge.core.errors import RenderFailure
from stackforge.core.hasher import render_template_json
from stackforge.models.templates import (
    SnapshotKey,
    TemplateDocument,
    TemplateSource,
    check_name_segment,
)

logger = logging.getLogger(__name__)

_LOGICAL_ID = re.compile(r"^[A-Za-z0-9]+$")


def template_file_name(path_id: str) -> str:
    """File name of a synthesized product stack template."""
    return f"{path_id}.product.template.json"


def _entries(template: dict[str, Any], section: str) -> list[tuple[str, dict[str, Any]]]:
    """Entries of one template section, checked to be mappings of mappings."""
    entries = template.get(section, {})
    if not isinstance(entries, dict):
        raise ValueError(f"Template section '{section}' must be a mapping")
    for logical_id, body in entries.items():
        if not isinstance(body, dict):
            raise ValueError(f"{section} entry '{logical_id}' must be a mapping")
    return list(entries.items())


class ProductStack(TemplateSource):
    """An in-memory product stack definition.

    Parameters
    ----------
    stack_id:
        Logical id of the stack within its product.
    path_id:
        Unique id across the application. Defaults to ``stack_id``.
    asset_bucket:
        Bucket that receives this stack's template, if already known.
    description:
        Optional template description.
    """

    def __init__(
        self,
        stack_id: str,
        *,
        path_id: str | None = None,
        asset_bucket: str | None = None,
        description: str | None = None,
    ) -> None:
        if not stack_id:
            raise ValueError("stack_id must not be empty")
        self.stack_id = check_name_segment(stack_id)
        self.path_id = check_name_segment(path_id or stack_id)
        self.asset_bucket = asset_bucket or None
        self.description = description
        self._parameters: dict[str, dict[str, Any]] = {}
        self._resources: dict[str, dict[str, Any]] = {}
        self._outputs: dict[str, dict[str, Any]] = {}

    @classmethod
    def from_template(
        cls,
        stack_id: str,
        template: dict[str, Any],
        **kwargs: Any,
    ) -> ProductStack:
        """Build a stack from an already-structured template mapping.

        Raises ``ValueError`` when a section or entry is malformed: not a
        mapping, a resource without ``Type``, an output without ``Value``
        or an invalid logical id.
        """
        stack = cls(stack_id, description=template.get("Description"), **kwargs)
        for logical_id, body in _entries(template, "Parameters"):
            stack.add_parameter(logical_id, **body)
        for logical_id, body in _entries(template, "Resources"):
            if "Type" not in body:
                raise ValueError(f"Resource '{logical_id}' has no Type")
            stack.add_resource(logical_id, body["Type"], body.get("Properties"))
        for logical_id, body in _entries(template, "Outputs"):
            if "Value" not in body:
                raise ValueError(f"Output '{logical_id}' has no Value")
            stack.add_output(logical_id, body["Value"], body.get("Description"))
        return stack

    # ------------------------------------------------------------------
    # Graph construction
    # ------------------------------------------------------------------

    @staticmethod
    def _check_logical_id(logical_id: str, section: dict[str, Any]) -> None:
        if not _LOGICAL_ID.match(logical_id):
            raise ValueError(f"Logical id '{logical_id}' must be alphanumeric")
        if logical_id in section:
            raise ValueError(f"Logical id '{logical_id}' is already defined")

    def add_parameter(self, logical_id: str, **attributes: Any) -> None:
        self._check_logical_id(logical_id, self._parameters)
        self._parameters[logical_id] = dict(attributes)

    def add_resource(
        self,
        logical_id: str,
        resource_type: str,
        properties: dict[str, Any] | None = None,
    ) -> None:
        self._check_logical_id(logical_id, self._resources)
        resource: dict[str, Any] = {"Type": resource_type}
        if properties:
            resource["Properties"] = properties
        self._resources[logical_id] = resource

    def add_output(self, logical_id: str, value: Any, description: str | None = None) -> None:
        self._check_logical_id(logical_id, self._outputs)
        output: dict[str, Any] = {"Value": value}
        if description:
            output["Description"] = description
        self._outputs[logical_id] = output

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def to_template(self) -> dict[str, Any]:
        """Return the template as a plain mapping (empty sections omitted)."""
        template: dict[str, Any] = {}
        if self.description:
            template["Description"] = self.description
        if self._parameters:
            template["Parameters"] = self._parameters
        template["Resources"] = self._resources
        if self._outputs:
            template["Outputs"] = self._outputs
        return template

    def render(self) -> TemplateDocument:
        try:
            body = render_template_json(self.to_template())
        except (TypeError, ValueError) as exc:
            raise RenderFailure(self.stack_id, str(exc)) from exc
        logger.debug("Rendered product stack %s (%d bytes)", self.stack_id, len(body))
        return TemplateDocument(body=body, file_name=template_file_name(self.path_id))


class SnapshotTemplate(TemplateSource):
    """Renders a stack version from its on-disk snapshot.

    Parameters
    ----------
    stack:
        The stack the snapshot was taken of; its identity is reused.
    version_name:
        The snapshotted version to replay.
    directory:
        Snapshot directory to read from.
    """

    def __init__(self, stack: TemplateSource, version_name: str, directory: Path) -> None:
        self.stack_id = stack.stack_id
        self.path_id = stack.path_id
        self.asset_bucket = stack.asset_bucket
        self.version_name = version_name
        self.directory = Path(directory)

    @property
    def snapshot_path(self) -> Path:
        key = SnapshotKey(
            stack_path_id=self.path_id,
            stack_id=self.stack_id,
            version_name=self.version_name,
        )
        return self.directory / key.file_name

    def render(self) -> TemplateDocument:
        path = self.snapshot_path
        try:
            body = path.read_bytes()
        except OSError as exc:
            raise RenderFailure(
                self.stack_id, f"cannot read snapshot {path}: {exc}"
            ) from exc
        logger.debug("Replayed snapshot %s for %s", path, self.stack_id)
        return TemplateDocument(body=body, file_name=template_file_name(self.path_id))
