"""Version manifest stores — the persisted history of built versions.

The manifest maps ``product -> stack -> version`` to the digest, description
and validation flag a version was built with. A later build that asks to
reuse a version resolves it here instead of rendering it again.

The JSON store is a single local file, read and written wholesale. Every
``upsert`` re-reads the file before writing so that sibling entries written
by an earlier invocation survive. There is no locking: two build processes
racing on the same file can lose one of the writes. That is accepted for a
workstation build tool.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from stackforge.core.errors import CorruptManifest
from stackforge.models.versioning import MANIFEST_ADAPTER, Manifest, VersionRecord

logger = logging.getLogger(__name__)


def lookup_record(
    manifest: Manifest,
    product_name: str,
    stack_id: str,
    version_name: str,
) -> VersionRecord | None:
    """Find one record in a loaded manifest.

    Returns None when any level of the key is missing.
    """
    entry = manifest.get(product_name, {}).get(stack_id, {}).get(version_name)
    if entry is None:
        return None
    return VersionRecord.from_entry(product_name, stack_id, version_name, entry)


def merge_record(manifest: Manifest, record: VersionRecord) -> Manifest:
    """Return a copy of ``manifest`` with ``record`` written over its key."""
    merged = copy.deepcopy(manifest)
    versions = merged.setdefault(record.product_name, {}).setdefault(record.stack_id, {})
    versions[record.version_name] = record.to_entry()
    return merged


@runtime_checkable
class ManifestStore(Protocol):
    """Read/write access to the version manifest."""

    def load(self) -> Manifest:
        """Return the whole manifest, empty if none was ever written."""
        ...

    def lookup(
        self, product_name: str, stack_id: str, version_name: str
    ) -> VersionRecord | None:
        """Return the record for the triple, or None."""
        ...

    def upsert(self, record: VersionRecord) -> None:
        """Merge one record into the manifest and persist it."""
        ...


class JsonManifestStore:
    """Manifest persisted as one JSON document.

    Parameters
    ----------
    path:
        Location of the manifest file. Relative paths resolve against the
        working directory. The file is created on the first ``upsert``.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Manifest:
        if not self._path.exists():
            logger.debug("No version manifest at %s, starting empty", self._path)
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except ValueError as exc:
            raise CorruptManifest(self._path, f"not valid JSON ({exc})") from exc
        try:
            return MANIFEST_ADAPTER.validate_python(raw)
        except ValidationError as exc:
            raise CorruptManifest(
                self._path, f"unexpected structure ({exc.error_count()} error(s))"
            ) from exc

    def lookup(
        self, product_name: str, stack_id: str, version_name: str
    ) -> VersionRecord | None:
        return lookup_record(self.load(), product_name, stack_id, version_name)

    def upsert(self, record: VersionRecord) -> None:
        # Read-modify-write, not atomic across processes.
        merged = merge_record(self.load(), record)
        self._write(merged)
        logger.info(
            "Recorded version %s of %s/%s (digest %s) in %s",
            record.version_name,
            record.product_name,
            record.stack_id,
            record.digest[:12],
            self._path,
        )

    def _write(self, manifest: Manifest) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = MANIFEST_ADAPTER.dump_python(manifest, mode="json", by_alias=True)
        self._path.write_text(
            json.dumps(data, indent=2, sort_keys=True) + "\n",
            encoding="utf-8",
        )


class InMemoryManifestStore:
    """Manifest held in memory. Useful for tests and embedding."""

    def __init__(self, manifest: Manifest | None = None) -> None:
        self._manifest: Manifest = copy.deepcopy(manifest) if manifest else {}
        self.upsert_count = 0

    def load(self) -> Manifest:
        return copy.deepcopy(self._manifest)

    def lookup(
        self, product_name: str, stack_id: str, version_name: str
    ) -> VersionRecord | None:
        return lookup_record(self._manifest, product_name, stack_id, version_name)

    def upsert(self, record: VersionRecord) -> None:
        self._manifest = merge_record(self._manifest, record)
        self.upsert_count += 1
