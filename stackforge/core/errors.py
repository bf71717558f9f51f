"""Error taxonomy for template synthesis and version resolution.

Nothing in the core recovers from these locally. Any of them aborts the
resolution of the current product and is surfaced to the caller with
enough context to act on.
"""

from __future__ import annotations

from pathlib import Path


class StackforgeError(RuntimeError):
    """Base class for every error raised by the synthesis core."""


class RenderFailure(StackforgeError):
    """The template renderer could not produce a document."""

    def __init__(self, stack_id: str, reason: str) -> None:
        self.stack_id = stack_id
        super().__init__(f"Failed to render template for product stack '{stack_id}': {reason}")


class StorageUnavailable(StackforgeError):
    """An artifact upload could not be completed. Not retried here."""

    def __init__(self, bucket_name: str, object_key: str, reason: str) -> None:
        self.bucket_name = bucket_name
        self.object_key = object_key
        super().__init__(
            f"Could not upload '{object_key}' to bucket '{bucket_name}': {reason}"
        )


class CorruptManifest(StackforgeError):
    """The persisted version manifest exists but cannot be parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = Path(path)
        super().__init__(f"Version manifest at {self.path} is corrupt: {reason}")


class SnapshotDrift(StackforgeError):
    """A locked version's template no longer matches its snapshot."""

    def __init__(self, version_name: str, directory: Path, snapshot_file: str) -> None:
        self.version_name = version_name
        self.directory = Path(directory)
        self.snapshot_file = snapshot_file
        super().__init__(
            f"Template has changed for product stack version '{version_name}'. "
            f"'{version_name}' already exists in {self.directory} and is locked. "
            f"Either change the version name to deploy a new version, or, if "
            f"'{version_name}' was synthesized but never deployed, delete "
            f"{self.directory / snapshot_file} and synthesize again."
        )


class ResolutionError(StackforgeError):
    """A cross-version invariant was violated while resolving a product."""

    def __init__(self, product_name: str, stack_id: str, version_name: str, message: str) -> None:
        self.product_name = product_name
        self.stack_id = stack_id
        self.version_name = version_name
        super().__init__(message)


class MissingBaseArtifact(ResolutionError):
    """A cached version's stack has no storage bucket to resolve against."""

    def __init__(self, product_name: str, stack_id: str, version_name: str) -> None:
        super().__init__(
            product_name,
            stack_id,
            version_name,
            f"Cannot reuse version '{version_name}' of product '{product_name}': "
            f"no asset bucket is known for product stack '{stack_id}'. Configure "
            f"an asset bucket for the stack or build at least one fresh version of it.",
        )


class DuplicateVersion(ResolutionError):
    """The same version name was resolved twice for one product."""

    def __init__(self, product_name: str, stack_id: str, version_name: str) -> None:
        super().__init__(
            product_name,
            stack_id,
            version_name,
            f"Duplicate version name '{version_name}' for product '{product_name}' "
            f"(product stack '{stack_id}'). Each version may be declared once, "
            f"either built fresh or reused from history.",
        )


class VersionNotFound(ResolutionError):
    """No previous build recorded the requested version."""

    def __init__(
        self,
        product_name: str,
        stack_id: str,
        version_name: str,
        *,
        searched: str = "the version history",
    ) -> None:
        where = f" in product '{product_name}'" if product_name else ""
        super().__init__(
            product_name,
            stack_id,
            version_name,
            f"Version '{version_name}' of product stack '{stack_id}'{where} "
            f"was not found in {searched}.",
        )
