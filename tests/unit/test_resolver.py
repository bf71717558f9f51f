"""Tests for VersionResolver — fresh and cached paths, cross-version invariants."""

from __future__ import annotations

import pytest

from stackforge.core.artifact_sink import location_for
from stackforge.core.errors import (
    DuplicateVersion,
    MissingBaseArtifact,
    RenderFailure,
    SnapshotDrift,
    StorageUnavailable,
    VersionNotFound,
)
from stackforge.core.manifest_store import InMemoryManifestStore
from stackforge.core.renderer import ProductStack
from stackforge.core.resolver import VersionResolver
from stackforge.models.declarations import CachedVersion, FreshVersion
from stackforge.models.product import ResolutionOutcome
from stackforge.models.versioning import ManifestEntry

URL_BASE = "https://s3.test.local"


def _seeded_resolver(sinks, snapshot_dir, manifest) -> tuple[VersionResolver, InMemoryManifestStore]:
    store = InMemoryManifestStore(manifest)
    resolver = VersionResolver(
        store,
        sinks,
        default_bucket="default-assets",
        url_base=URL_BASE,
        snapshot_directory=snapshot_dir,
    )
    return resolver, store


class TestFreshPath:
    def test_two_fresh_versions(self, resolver, sinks, memory_store, make_stack):
        """Two unlocked fresh versions with distinct bodies."""
        declarations = [
            FreshVersion(version_name="v1", stack=make_stack(marker="one")),
            FreshVersion(version_name="v2", stack=make_stack(marker="two")),
        ]
        result = resolver.resolve("P", declarations)

        assert [a.version_name for a in result] == ["v1", "v2"]
        assert all(a.outcome is ResolutionOutcome.FRESH for a in result)
        assert result[0].template_url != result[1].template_url
        assert sinks.upload_count == 2
        assert memory_store.upsert_count == 0
        assert memory_store.load() == {}

    def test_defaults_flow_through(self, resolver, make_stack):
        [artifact] = resolver.resolve("P", [FreshVersion(version_name="v1", stack=make_stack())])
        assert artifact.description == ""
        assert artifact.disable_template_validation is False

    def test_validation_disabled(self, resolver, make_stack):
        [artifact] = resolver.resolve(
            "P",
            [FreshVersion(version_name="v1", stack=make_stack(), validate_template=False,
                          description="no checks")],
        )
        assert artifact.disable_template_validation is True
        assert artifact.description == "no checks"

    def test_url_is_derived_from_digest(self, resolver, make_stack):
        stack = make_stack()
        [artifact] = resolver.resolve("P", [FreshVersion(version_name="v1", stack=stack)])
        digest = stack.render().digest
        assert artifact.digest == digest
        assert artifact.template_url == location_for("default-assets", digest, URL_BASE).http_url

    def test_stack_bucket_overrides_default(self, resolver, sinks, make_stack):
        stack = make_stack(asset_bucket="stack-assets")
        resolver.resolve("P", [FreshVersion(version_name="v1", stack=stack)])
        assert set(sinks.sinks) == {"stack-assets"}

    def test_no_snapshot_without_lock_flag(self, resolver, snapshot_dir, make_stack):
        resolver.resolve("P", [FreshVersion(version_name="v1", stack=make_stack())])
        assert not snapshot_dir.exists()

    def test_unlocked_flag_writes_snapshot(self, resolver, snapshot_dir, make_stack):
        stack = make_stack()
        resolver.resolve("P", [FreshVersion(version_name="v1", stack=stack, locked=False)])
        assert (snapshot_dir / "S.S.v1.template.json").read_bytes() == stack.render().body

    def test_identical_bodies_upload_twice(self, resolver, sinks, make_stack):
        resolver.resolve(
            "P",
            [
                FreshVersion(version_name="v1", stack=make_stack()),
                FreshVersion(version_name="v2", stack=make_stack()),
            ],
        )
        assert sinks.upload_count == 2

    def test_duplicate_fresh_names(self, resolver, make_stack):
        with pytest.raises(DuplicateVersion, match="v1"):
            resolver.resolve(
                "P",
                [
                    FreshVersion(version_name="v1", stack=make_stack(marker="a")),
                    FreshVersion(version_name="v1", stack=make_stack(marker="b")),
                ],
            )

    def test_render_error_is_wrapped(self, resolver):
        class Broken(ProductStack):
            def render(self):
                raise KeyError("missing resource")

        with pytest.raises(RenderFailure, match="Broken"):
            resolver.resolve("P", [FreshVersion(version_name="v1", stack=Broken("Broken"))])

    def test_storage_failure_propagates(self, resolver, sinks, make_stack):
        sinks.offline.add("default-assets")
        with pytest.raises(StorageUnavailable, match="bucket offline"):
            resolver.resolve("P", [FreshVersion(version_name="v1", stack=make_stack())])

    def test_no_bucket_at_all(self, memory_store, sinks, snapshot_dir, make_stack):
        resolver = VersionResolver(
            memory_store, sinks, url_base=URL_BASE, snapshot_directory=snapshot_dir
        )
        with pytest.raises(StorageUnavailable, match="no asset bucket"):
            resolver.resolve("P", [FreshVersion(version_name="v1", stack=make_stack())])


class TestLockedVersions:
    def test_rebuild_with_changed_body_fails(self, resolver, snapshot_dir, make_stack):
        """A locked version whose template changed cannot be rebuilt."""
        resolver.resolve("P", [FreshVersion(version_name="v1", stack=make_stack(marker="a"),
                                            locked=True)])
        snapshot = snapshot_dir / "S.S.v1.template.json"
        original = snapshot.read_bytes()

        with pytest.raises(SnapshotDrift) as excinfo:
            resolver.resolve("P", [FreshVersion(version_name="v1", stack=make_stack(marker="b"),
                                                locked=True)])
        assert excinfo.value.version_name == "v1"
        assert snapshot.read_bytes() == original

    def test_drift_aborts_before_upload(self, resolver, sinks, make_stack):
        resolver.resolve("P", [FreshVersion(version_name="v1", stack=make_stack(marker="a"),
                                            locked=True)])
        with pytest.raises(SnapshotDrift):
            resolver.resolve("P", [FreshVersion(version_name="v1", stack=make_stack(marker="b"),
                                                locked=True)])
        assert sinks.upload_count == 1

    def test_rebuild_with_same_body_succeeds(self, resolver, make_stack):
        for _ in range(2):
            resolver.resolve("P", [FreshVersion(version_name="v1", stack=make_stack(),
                                                locked=True)])

    def test_renaming_lifts_the_lock(self, resolver, make_stack):
        resolver.resolve("P", [FreshVersion(version_name="v1", stack=make_stack(marker="a"),
                                            locked=True)])
        result = resolver.resolve(
            "P", [FreshVersion(version_name="v2", stack=make_stack(marker="b"), locked=True)]
        )
        assert result[0].version_name == "v2"

    def test_per_version_snapshot_directory(self, resolver, tmp_dir, make_stack):
        own_dir = tmp_dir / "own"
        resolver.resolve(
            "P",
            [FreshVersion(version_name="v1", stack=make_stack(), locked=True,
                          snapshot_directory=own_dir)],
        )
        assert (own_dir / "S.S.v1.template.json").exists()


class TestCachedPath:
    def test_reuse_recorded_version(self, sinks, snapshot_dir, make_stack):
        """A recorded version is reused without rendering or uploading."""
        resolver, _ = _seeded_resolver(
            sinks,
            snapshot_dir,
            {"P": {"S": {"v1": ManifestEntry(digest="D" * 64, description="old")}}},
        )
        stack = make_stack(asset_bucket="stack-assets")
        [artifact] = resolver.resolve("P", [CachedVersion(version_name="v1", stack=stack)])

        assert artifact.outcome is ResolutionOutcome.CACHED
        assert artifact.digest == "D" * 64
        assert artifact.template_url == location_for("stack-assets", "D" * 64, URL_BASE).http_url
        assert artifact.description == "old"
        assert stack.render_count == 0
        assert sinks.upload_count == 0

    def test_missing_record(self, sinks, snapshot_dir, make_stack):
        resolver, _ = _seeded_resolver(sinks, snapshot_dir, {})
        with pytest.raises(VersionNotFound) as excinfo:
            resolver.resolve(
                "P", [CachedVersion(version_name="v1", stack=make_stack(asset_bucket="b"))]
            )
        assert excinfo.value.version_name == "v1"
        assert excinfo.value.product_name == "P"
        assert "v1" in str(excinfo.value)

    def test_record_under_other_product_does_not_count(self, sinks, snapshot_dir, make_stack):
        resolver, _ = _seeded_resolver(
            sinks, snapshot_dir, {"Q": {"S": {"v1": ManifestEntry(digest="d")}}}
        )
        with pytest.raises(VersionNotFound):
            resolver.resolve(
                "P", [CachedVersion(version_name="v1", stack=make_stack(asset_bucket="b"))]
            )

    def test_no_known_bucket(self, sinks, snapshot_dir, make_stack):
        resolver, _ = _seeded_resolver(
            sinks, snapshot_dir, {"P": {"S": {"v1": ManifestEntry(digest="d")}}}
        )
        with pytest.raises(MissingBaseArtifact) as excinfo:
            resolver.resolve("P", [CachedVersion(version_name="v1", stack=make_stack())])
        assert excinfo.value.stack_id == "S"

    def test_bucket_learned_from_fresh_build(self, sinks, snapshot_dir, make_stack):
        resolver, _ = _seeded_resolver(
            sinks, snapshot_dir, {"P": {"S": {"v1": ManifestEntry(digest="d" * 64)}}}
        )
        stack = make_stack()
        result = resolver.resolve(
            "P",
            [
                CachedVersion(version_name="v1", stack=stack),
                FreshVersion(version_name="v2", stack=stack),
            ],
        )
        assert [(a.version_name, a.outcome) for a in result] == [
            ("v2", ResolutionOutcome.FRESH),
            ("v1", ResolutionOutcome.CACHED),
        ]
        assert result[1].template_url.startswith(f"{URL_BASE}/default-assets/")

    def test_cached_entries_follow_manifest_order(self, sinks, snapshot_dir, make_stack):
        resolver, _ = _seeded_resolver(
            sinks,
            snapshot_dir,
            {
                "P": {
                    "A": {"a1": ManifestEntry(digest="a1")},
                    "S": {
                        "v1": ManifestEntry(digest="d1"),
                        "v2": ManifestEntry(digest="d2"),
                    },
                }
            },
        )
        stack = make_stack(asset_bucket="b")
        other = make_stack("A", asset_bucket="b")
        result = resolver.resolve(
            "P",
            [
                CachedVersion(version_name="v2", stack=stack),
                FreshVersion(version_name="v3", stack=stack),
                CachedVersion(version_name="v1", stack=stack),
                CachedVersion(version_name="a1", stack=other),
            ],
        )
        assert [(a.stack_id, a.version_name) for a in result] == [
            ("S", "v3"),
            ("A", "a1"),
            ("S", "v1"),
            ("S", "v2"),
        ]

    def test_declared_flags_override_record(self, sinks, snapshot_dir, make_stack):
        resolver, _ = _seeded_resolver(
            sinks,
            snapshot_dir,
            {"P": {"S": {"v1": ManifestEntry(digest="d", description="old",
                                             validate_template=True)}}},
        )
        [artifact] = resolver.resolve(
            "P",
            [CachedVersion(version_name="v1", stack=make_stack(asset_bucket="b"),
                           description="new", validate_template=False)],
        )
        assert artifact.description == "new"
        assert artifact.disable_template_validation is True

    def test_corrupt_manifest_only_matters_when_reusing(self, tmp_dir, sinks, snapshot_dir,
                                                       make_stack):
        from stackforge.core.errors import CorruptManifest
        from stackforge.core.manifest_store import JsonManifestStore

        path = tmp_dir / "versions.json"
        path.write_text("garbage")
        resolver = VersionResolver(
            JsonManifestStore(path), sinks, default_bucket="default-assets",
            url_base=URL_BASE, snapshot_directory=snapshot_dir,
        )
        resolver.resolve("P", [FreshVersion(version_name="v1", stack=make_stack())])
        with pytest.raises(CorruptManifest):
            resolver.resolve(
                "P", [CachedVersion(version_name="v0", stack=make_stack(asset_bucket="b"))]
            )


class TestDuplicateDetection:
    @pytest.mark.parametrize("cached_first", [True, False])
    def test_fresh_and_cached_same_name(self, sinks, snapshot_dir, make_stack, cached_first):
        resolver, _ = _seeded_resolver(
            sinks, snapshot_dir, {"P": {"S": {"v1": ManifestEntry(digest="d")}}}
        )
        stack = make_stack()
        fresh = FreshVersion(version_name="v1", stack=stack)
        cached = CachedVersion(version_name="v1", stack=stack)
        declarations = [cached, fresh] if cached_first else [fresh, cached]
        with pytest.raises(DuplicateVersion) as excinfo:
            resolver.resolve("P", declarations)
        assert excinfo.value.version_name == "v1"
        assert excinfo.value.product_name == "P"

    def test_two_cached_same_name(self, sinks, snapshot_dir, make_stack):
        resolver, _ = _seeded_resolver(
            sinks, snapshot_dir, {"P": {"S": {"v1": ManifestEntry(digest="d")}}}
        )
        stack = make_stack(asset_bucket="b")
        with pytest.raises(DuplicateVersion):
            resolver.resolve(
                "P",
                [CachedVersion(version_name="v1", stack=stack),
                 CachedVersion(version_name="v1", stack=stack)],
            )

    def test_same_name_across_products(self, resolver, make_stack):
        resolver.resolve("P", [FreshVersion(version_name="v1", stack=make_stack())])
        resolver.resolve("Q", [FreshVersion(version_name="v1", stack=make_stack())])
