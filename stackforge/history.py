"""Product stack history — declare the current and past versions of a stack.

Wraps one product stack and hands out version declarations:

* the current version, always snapshot-tracked, locked or not;
* a past version replayed byte-for-byte from its snapshot file;
* a past version reused from the version manifest.

Example::

    history = ProductStackHistory(stack, "v3", current_version_locked=True)
    declarations = [
        history.version_from_history("v1"),
        history.version_from_snapshot("v2"),
        history.current_version(),
    ]
"""

from __future__ import annotations

from pathlib import Path

from stackforge.config import config as default_config
from stackforge.core.errors import VersionNotFound
from stackforge.core.renderer import SnapshotTemplate
from stackforge.core.snapshot_guard import SnapshotGuard
from stackforge.models.declarations import CachedVersion, FreshVersion
from stackforge.models.templates import SnapshotKey, TemplateSource


class ProductStackHistory:
    """Declares versions of one product stack.

    Parameters
    ----------
    stack:
        The stack whose versions are declared.
    current_version_name:
        Name of the version built from the stack as it is now.
    current_version_locked:
        Whether the current version's snapshot is an integrity contract.
    product_name:
        Used in error messages only. Left out of them when empty.
    snapshot_directory:
        Directory holding snapshots. Defaults to the configured one.
    description, validate_template:
        Applied to the current version.
    """

    def __init__(
        self,
        stack: TemplateSource,
        current_version_name: str,
        current_version_locked: bool,
        *,
        product_name: str = "",
        snapshot_directory: Path | None = None,
        description: str | None = None,
        validate_template: bool | None = None,
    ) -> None:
        self.stack = stack
        self.current_version_name = current_version_name
        self.current_version_locked = current_version_locked
        self.product_name = product_name
        self.snapshot_directory = Path(snapshot_directory or default_config.snapshot_directory)
        self.description = description
        self.validate_template = validate_template

    def current_version(self) -> FreshVersion:
        return FreshVersion(
            version_name=self.current_version_name,
            stack=self.stack,
            description=self.description,
            validate_template=self.validate_template,
            locked=self.current_version_locked,
            snapshot_directory=self.snapshot_directory,
        )

    def version_from_snapshot(
        self,
        version_name: str,
        *,
        description: str | None = None,
        validate_template: bool | None = None,
    ) -> FreshVersion:
        """Declare a past version rebuilt from its snapshot file.

        The snapshot is re-reconciled as locked, so the replayed body must
        match what is on disk (it always does unless the file changes
        between declaration and build).

        Raises VersionNotFound if no snapshot exists for the version.
        """
        key = SnapshotKey(
            stack_path_id=self.stack.path_id,
            stack_id=self.stack.stack_id,
            version_name=version_name,
        )
        if SnapshotGuard(self.snapshot_directory).read(key) is None:
            raise VersionNotFound(
                self.product_name,
                self.stack.stack_id,
                version_name,
                searched=f"snapshot directory {self.snapshot_directory}",
            )
        return FreshVersion(
            version_name=version_name,
            stack=SnapshotTemplate(self.stack, version_name, self.snapshot_directory),
            description=description,
            validate_template=validate_template,
            locked=True,
            snapshot_directory=self.snapshot_directory,
        )

    def version_from_history(
        self,
        version_name: str,
        *,
        description: str | None = None,
        validate_template: bool | None = None,
    ) -> CachedVersion:
        """Declare a past version reused from the version manifest."""
        return CachedVersion(
            version_name=version_name,
            stack=self.stack,
            description=description,
            validate_template=validate_template,
        )
