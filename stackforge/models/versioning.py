"""Version manifest models — the cross-invocation record of built versions.

On disk the manifest is a nested mapping::

    {product_name: {stack_id: {version_name: {digest, description, validateTemplate}}}}
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class ManifestEntry(BaseModel):
    """The persisted leaf of the manifest for one version."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    digest: str
    description: str = ""
    validate_template: bool = Field(default=True, alias="validateTemplate")


# product_name -> stack_id -> version_name -> entry
Manifest = dict[str, dict[str, dict[str, ManifestEntry]]]

MANIFEST_ADAPTER: TypeAdapter[Manifest] = TypeAdapter(Manifest)


class VersionRecord(BaseModel):
    """One historical version of a product stack.

    The (product_name, stack_id, version_name) triple is the unique key.
    Records are created when a version is recorded and never mutated.
    """

    model_config = ConfigDict(frozen=True)

    product_name: str
    stack_id: str
    version_name: str
    digest: str
    description: str = ""
    validate_template: bool = True

    @classmethod
    def from_entry(
        cls,
        product_name: str,
        stack_id: str,
        version_name: str,
        entry: ManifestEntry,
    ) -> VersionRecord:
        return cls(
            product_name=product_name,
            stack_id=stack_id,
            version_name=version_name,
            digest=entry.digest,
            description=entry.description,
            validate_template=entry.validate_template,
        )

    def to_entry(self) -> ManifestEntry:
        return ManifestEntry(
            digest=self.digest,
            description=self.description,
            validate_template=self.validate_template,
        )


def iter_records(manifest: Manifest, product_name: str | None = None) -> list[VersionRecord]:
    """Flatten a manifest into records, optionally for one product only.

    Records come back in manifest iteration order.
    """
    records: list[VersionRecord] = []
    for product, stacks in manifest.items():
        if product_name is not None and product != product_name:
            continue
        for stack_id, versions in stacks.items():
            for version_name, entry in versions.items():
                records.append(
                    VersionRecord.from_entry(product, stack_id, version_name, entry)
                )
    return records
