"""Artifact sinks — upload rendered templates to durable storage.

All sinks implement the ``ArtifactSink`` protocol: a ``bucket_name``
property and an ``upload(data, suggested_name)`` method returning the
:class:`ArtifactLocation` of the stored object.

Object keys are ``{sha256}{suffix}``, so a location can be derived from a
bucket and a digest alone (see :func:`location_for`). That is what lets a
version reused from history point at the object its original build
uploaded without touching storage again.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path, PurePosixPath
from typing import Protocol, runtime_checkable

from stackforge.core.errors import StorageUnavailable
from stackforge.core.hasher import template_digest
from stackforge.models.templates import ArtifactLocation

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".json"


def object_key_for(digest: str, suffix: str = TEMPLATE_SUFFIX) -> str:
    return f"{digest}{suffix}"


def location_for(
    bucket_name: str,
    digest: str,
    url_base: str,
    suffix: str = TEMPLATE_SUFFIX,
) -> ArtifactLocation:
    """Derive the storage location of a template from its digest."""
    key = object_key_for(digest, suffix)
    return ArtifactLocation(
        bucket_name=bucket_name,
        object_key=key,
        http_url=f"{url_base.rstrip('/')}/{bucket_name}/{key}",
    )


@runtime_checkable
class ArtifactSink(Protocol):
    """Protocol every template storage backend implements.

    Implementations must raise ``StorageUnavailable`` when an upload
    cannot be completed and must not retry internally; the whole
    synthesis pass is what gets retried.
    """

    @property
    def bucket_name(self) -> str:
        """Bucket this sink writes into."""
        ...

    def upload(self, data: bytes, suggested_name: str) -> ArtifactLocation:
        """Store ``data`` and return where it can be retrieved from."""
        ...


class LocalBucketSink:
    """Writes templates into a directory that stands in for a bucket.

    Layout: ``{root}/{bucket_name}/{sha256}{suffix}``. Uploading the same
    bytes twice rewrites the same object; there is no deduplication here.
    The suggested names each object was uploaded under are kept in
    ``{root}/{bucket_name}/uploads.json`` for inspection.

    Parameters
    ----------
    root:
        Directory holding one subdirectory per bucket.
    bucket_name:
        The bucket to write into.
    url_base:
        Prefix of the retrievable URLs handed back to callers.
    """

    def __init__(self, root: Path, bucket_name: str, url_base: str) -> None:
        if not bucket_name:
            raise ValueError("bucket_name must not be empty")
        self._root = Path(root)
        self._bucket_name = bucket_name
        self._url_base = url_base

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    @property
    def bucket_path(self) -> Path:
        return self._root / self._bucket_name

    def _object_path(self, object_key: str) -> Path:
        return self.bucket_path / object_key

    def upload(self, data: bytes, suggested_name: str) -> ArtifactLocation:
        digest = template_digest(data)
        suffix = PurePosixPath(suggested_name).suffix or TEMPLATE_SUFFIX
        location = location_for(self._bucket_name, digest, self._url_base, suffix)
        path = self._object_path(location.object_key)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
            self._record_upload(location.object_key, suggested_name)
        except (OSError, ValueError) as exc:
            raise StorageUnavailable(self._bucket_name, location.object_key, str(exc)) from exc

        logger.info(
            "Uploaded %s as s3://%s/%s", suggested_name, self._bucket_name, location.object_key
        )
        return location

    def _record_upload(self, object_key: str, suggested_name: str) -> None:
        listing_path = self.bucket_path / "uploads.json"
        listing: dict[str, list[str]] = {}
        if listing_path.exists():
            listing = json.loads(listing_path.read_text(encoding="utf-8"))
        if not isinstance(listing, dict):
            raise ValueError(f"Upload listing {listing_path} is not a JSON object")
        names = listing.setdefault(object_key, [])
        if not isinstance(names, list):
            raise ValueError(f"Upload listing {listing_path} has a malformed entry for {object_key}")
        if suggested_name not in names:
            names.append(suggested_name)
        listing_path.write_text(
            json.dumps(listing, indent=2, sort_keys=True), encoding="utf-8"
        )

    # ------------------------------------------------------------------
    # Retrieve
    # ------------------------------------------------------------------

    def exists(self, object_key: str) -> bool:
        return self._object_path(object_key).exists()

    def retrieve(self, object_key: str) -> bytes:
        """Read back an uploaded object.

        Raises FileNotFoundError if the object was never uploaded.
        """
        path = self._object_path(object_key)
        if not path.exists():
            raise FileNotFoundError(f"Object not found: s3://{self._bucket_name}/{object_key}")
        return path.read_bytes()
