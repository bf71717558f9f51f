"""Product synthesizer — the coordinator for one product build.

The ProductSynthesizer wires the manifest store, the artifact sinks and the
snapshot directory from configuration into a VersionResolver, assembles the
resolved versions into a ProductDefinition, and optionally records freshly
built versions in the manifest so that later builds can reuse them.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from pathlib import Path

from stackforge.config import StackforgeConfig
from stackforge.core.artifact_sink import ArtifactSink, LocalBucketSink
from stackforge.core.manifest_store import JsonManifestStore, ManifestStore
from stackforge.core.resolver import SinkFactory, VersionResolver
from stackforge.models.declarations import CachedVersion, FreshVersion
from stackforge.models.product import ProductDefinition, ResolutionOutcome
from stackforge.models.versioning import VersionRecord

logger = logging.getLogger(__name__)


class ProductSynthesizer:
    """Builds product definitions from declared versions.

    Parameters
    ----------
    config:
        Runtime configuration. Uses defaults (and STACKFORGE_* overrides)
        if not provided.
    manifest_store:
        Overrides the JSON manifest at ``config.manifest_path``.
    sink_factory:
        Overrides the local bucket sinks under ``config.asset_root``.
    """

    def __init__(
        self,
        config: StackforgeConfig | None = None,
        *,
        manifest_store: ManifestStore | None = None,
        sink_factory: SinkFactory | None = None,
    ) -> None:
        self.config = config or StackforgeConfig()
        self.manifest_store = manifest_store or JsonManifestStore(self.config.manifest_path)
        self._sink_factory = sink_factory or self._local_sink
        self.resolver = VersionResolver(
            self.manifest_store,
            self._sink_factory,
            default_bucket=self.config.asset_bucket,
            url_base=self.config.asset_url_base,
            snapshot_directory=self.config.snapshot_directory,
        )

    def _local_sink(self, bucket_name: str) -> ArtifactSink:
        return LocalBucketSink(self.config.asset_root, bucket_name, self.config.asset_url_base)

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------

    def synthesize(
        self,
        product_name: str,
        owner: str,
        declarations: Sequence[FreshVersion | CachedVersion],
        *,
        description: str = "",
        record_fresh: bool | None = None,
    ) -> ProductDefinition:
        """Resolve all declared versions and assemble the product.

        Fresh versions are recorded in the manifest only after the whole
        resolution succeeded, and only when ``record_fresh`` (falling back
        to ``config.record_fresh_versions``) is set.
        """
        artifacts = self.resolver.resolve(product_name, declarations)

        if record_fresh is None:
            record_fresh = self.config.record_fresh_versions
        if record_fresh:
            for artifact in artifacts:
                if artifact.outcome is not ResolutionOutcome.FRESH:
                    continue
                self.manifest_store.upsert(
                    VersionRecord(
                        product_name=product_name,
                        stack_id=artifact.stack_id,
                        version_name=artifact.version_name,
                        digest=artifact.digest,
                        description=artifact.description,
                        validate_template=not artifact.disable_template_validation,
                    )
                )

        fresh_count = sum(1 for a in artifacts if a.outcome is ResolutionOutcome.FRESH)
        logger.info(
            "Synthesized product %s: %d fresh, %d cached",
            product_name,
            fresh_count,
            len(artifacts) - fresh_count,
        )
        return ProductDefinition(
            product_name=product_name,
            owner=owner,
            description=description,
            provisioning_artifacts=artifacts,
        )

    def write_definition(self, definition: ProductDefinition) -> Path:
        """Write the product document to the output directory.

        Returns the path of the written file.
        """
        out_dir = self.config.output_directory
        out_dir.mkdir(parents=True, exist_ok=True)
        path = out_dir / f"{definition.product_name}.product.json"
        path.write_text(
            json.dumps(definition.to_document(), indent=2) + "\n", encoding="utf-8"
        )
        logger.debug("Wrote product definition to %s", path)
        return path
