"""Stackforge data models — all Pydantic v2, all frozen (immutable)."""

from stackforge.models.declarations import (
    CachedVersion,
    FreshVersion,
    NormalizedVersion,
    VersionDeclaration,
    VersionSource,
    normalize_declaration,
)
from stackforge.models.product import (
    ProductDefinition,
    ProvisioningArtifact,
    ResolutionOutcome,
)
from stackforge.models.templates import (
    ArtifactLocation,
    SnapshotKey,
    TemplateDocument,
    TemplateSource,
)
from stackforge.models.versioning import (
    MANIFEST_ADAPTER,
    Manifest,
    ManifestEntry,
    VersionRecord,
    iter_records,
)

__all__ = [
    # templates
    "TemplateDocument",
    "TemplateSource",
    "ArtifactLocation",
    "SnapshotKey",
    # versioning
    "Manifest",
    "ManifestEntry",
    "MANIFEST_ADAPTER",
    "VersionRecord",
    "iter_records",
    # declarations
    "VersionSource",
    "FreshVersion",
    "CachedVersion",
    "VersionDeclaration",
    "NormalizedVersion",
    "normalize_declaration",
    # product
    "ResolutionOutcome",
    "ProvisioningArtifact",
    "ProductDefinition",
]
