"""Version resolver — decides, per declared version, fresh build or reuse.

Each declared version of a product ends in one of two states:

* ``FRESH``: rendered now, digested, reconciled against its snapshot when
  it tracks one, uploaded, and emitted with a live location.
* ``CACHED``: looked up in the version manifest and emitted with the
  location its original build uploaded to. Nothing is rendered or
  uploaded.

Fresh versions are processed first, in declaration order. Cached versions
are resolved afterwards against a single load of the manifest, so a
version name claimed by a fresh build is always seen before the cached
declaration that would duplicate it, whatever order they were declared in.

Resolution is all-or-nothing: the first error aborts the product. Fresh
artifacts uploaded before the failure stay in storage unreferenced.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path

from stackforge.core.artifact_sink import ArtifactSink, location_for
from stackforge.core.errors import (
    DuplicateVersion,
    MissingBaseArtifact,
    RenderFailure,
    StackforgeError,
    StorageUnavailable,
    VersionNotFound,
)
from stackforge.core.manifest_store import ManifestStore, lookup_record
from stackforge.core.snapshot_guard import SnapshotGuard
from stackforge.models.declarations import (
    CachedVersion,
    FreshVersion,
    NormalizedVersion,
    VersionSource,
    normalize_declaration,
)
from stackforge.models.product import ProvisioningArtifact, ResolutionOutcome
from stackforge.models.templates import SnapshotKey, TemplateDocument, TemplateSource
from stackforge.models.versioning import iter_records

logger = logging.getLogger(__name__)

SinkFactory = Callable[[str], ArtifactSink]


class VersionResolver:
    """Resolves the declared versions of one product into provisioning artifacts.

    Parameters
    ----------
    manifest_store:
        Source of versions recorded by previous builds. Only read here.
    sink_factory:
        Returns the sink that uploads into a given bucket.
    default_bucket:
        Bucket for fresh uploads of stacks that do not name their own.
    url_base:
        Prefix of artifact URLs, shared with the sinks so that a cached
        location matches the one a fresh upload returned.
    snapshot_directory:
        Snapshot directory for versions that do not name their own.
    snapshot_guard_factory:
        Builds the guard for a snapshot directory.
    """

    def __init__(
        self,
        manifest_store: ManifestStore,
        sink_factory: SinkFactory,
        *,
        default_bucket: str | None = None,
        url_base: str,
        snapshot_directory: Path,
        snapshot_guard_factory: Callable[[Path], SnapshotGuard] = SnapshotGuard,
    ) -> None:
        self._manifest_store = manifest_store
        self._sink_factory = sink_factory
        self._default_bucket = default_bucket or None
        self._url_base = url_base
        self._snapshot_directory = Path(snapshot_directory)
        self._snapshot_guard_factory = snapshot_guard_factory
        self._sinks: dict[str, ArtifactSink] = {}

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(
        self,
        product_name: str,
        declarations: Sequence[FreshVersion | CachedVersion],
    ) -> list[ProvisioningArtifact]:
        """Resolve every declared version of ``product_name``.

        Returns FRESH entries in declaration order followed by CACHED
        entries in manifest iteration order.

        Raises
        ------
        RenderFailure, StorageUnavailable, SnapshotDrift
            From the fresh path.
        CorruptManifest
            If cached versions are declared and the manifest is unreadable.
        MissingBaseArtifact, DuplicateVersion, VersionNotFound
            From the cached path.
        """
        normalized = [
            normalize_declaration(d, self._snapshot_directory) for d in declarations
        ]

        claimed: set[str] = set()
        known_buckets: dict[str, str] = {
            v.stack_id: v.stack.asset_bucket for v in normalized if v.stack.asset_bucket
        }
        fresh: list[ProvisioningArtifact] = []
        pending: list[NormalizedVersion] = []

        for version in normalized:
            if version.source is VersionSource.HISTORY:
                pending.append(version)
                continue
            if version.version_name in claimed:
                raise DuplicateVersion(product_name, version.stack_id, version.version_name)
            artifact, bucket_name = self._build_fresh(version)
            known_buckets.setdefault(version.stack_id, bucket_name)
            claimed.add(version.version_name)
            fresh.append(artifact)

        cached: list[ProvisioningArtifact] = []
        if pending:
            manifest = self._manifest_store.load()
            for version in pending:
                bucket_name = known_buckets.get(version.stack_id)
                if bucket_name is None:
                    raise MissingBaseArtifact(
                        product_name, version.stack_id, version.version_name
                    )
                if version.version_name in claimed:
                    raise DuplicateVersion(product_name, version.stack_id, version.version_name)
                record = lookup_record(
                    manifest, product_name, version.stack_id, version.version_name
                )
                if record is None:
                    raise VersionNotFound(product_name, version.stack_id, version.version_name)

                location = location_for(bucket_name, record.digest, self._url_base)
                description = version.description if version.description_given else record.description
                validate = (
                    version.validate_template
                    if version.validate_template_given
                    else record.validate_template
                )
                cached.append(
                    ProvisioningArtifact(
                        version_name=version.version_name,
                        stack_id=version.stack_id,
                        description=description,
                        disable_template_validation=not validate,
                        template_url=location.http_url,
                        digest=record.digest,
                        outcome=ResolutionOutcome.CACHED,
                    )
                )
                claimed.add(version.version_name)
                logger.info(
                    "Reusing version %s of %s/%s from history (digest %s)",
                    version.version_name,
                    product_name,
                    version.stack_id,
                    record.digest[:12],
                )

            order = {
                (record.stack_id, record.version_name): position
                for position, record in enumerate(iter_records(manifest, product_name))
            }
            cached.sort(key=lambda a: order[(a.stack_id, a.version_name)])

        return fresh + cached

    # ------------------------------------------------------------------
    # Fresh path
    # ------------------------------------------------------------------

    def _build_fresh(self, version: NormalizedVersion) -> tuple[ProvisioningArtifact, str]:
        document = self._render(version.stack)
        digest = document.digest
        logger.debug("Version %s of %s has digest %s", version.version_name, version.stack_id, digest)

        if version.track_snapshot:
            key = SnapshotKey(
                stack_path_id=version.stack.path_id,
                stack_id=version.stack_id,
                version_name=version.version_name,
            )
            guard = self._snapshot_guard_factory(version.snapshot_directory)
            guard.reconcile(key, document.body, version.locked)

        bucket_name = version.stack.asset_bucket or self._default_bucket
        if bucket_name is None:
            raise StorageUnavailable(
                "<unset>",
                document.file_name,
                f"no asset bucket configured for product stack '{version.stack_id}'",
            )
        location = self._sink_for(bucket_name).upload(document.body, document.file_name)

        artifact = ProvisioningArtifact(
            version_name=version.version_name,
            stack_id=version.stack_id,
            description=version.description,
            disable_template_validation=not version.validate_template,
            template_url=location.http_url,
            digest=digest,
            outcome=ResolutionOutcome.FRESH,
        )
        logger.info(
            "Built version %s of %s fresh at %s",
            version.version_name,
            version.stack_id,
            location.http_url,
        )
        return artifact, location.bucket_name

    @staticmethod
    def _render(stack: TemplateSource) -> TemplateDocument:
        try:
            return stack.render()
        except StackforgeError:
            raise
        except Exception as exc:
            raise RenderFailure(stack.stack_id, f"{type(exc).__name__}: {exc}") from exc

    def _sink_for(self, bucket_name: str) -> ArtifactSink:
        sink = self._sinks.get(bucket_name)
        if sink is None:
            sink = self._sink_factory(bucket_name)
            self._sinks[bucket_name] = sink
        return sink
