"""Shared test fixtures for Stackforge."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from stackforge.config import StackforgeConfig
from stackforge.core.artifact_sink import location_for
from stackforge.core.errors import StorageUnavailable
from stackforge.core.hasher import template_digest
from stackforge.core.manifest_store import InMemoryManifestStore, JsonManifestStore
from stackforge.core.renderer import ProductStack
from stackforge.core.resolver import VersionResolver
from stackforge.core.snapshot_guard import SnapshotGuard
from stackforge.models.templates import ArtifactLocation

URL_BASE = "https://s3.test.local"


class RecordingSink:
    """In-memory sink that remembers every upload."""

    def __init__(self, bucket_name: str, *, fail: bool = False) -> None:
        self._bucket_name = bucket_name
        self.fail = fail
        self.uploads: list[tuple[str, bytes]] = []

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    def upload(self, data: bytes, suggested_name: str) -> ArtifactLocation:
        location = location_for(self._bucket_name, template_digest(data), URL_BASE)
        if self.fail:
            raise StorageUnavailable(self._bucket_name, location.object_key, "bucket offline")
        self.uploads.append((suggested_name, data))
        return location


class SinkRegistry:
    """Sink factory that hands out one RecordingSink per bucket."""

    def __init__(self) -> None:
        self.sinks: dict[str, RecordingSink] = {}
        self.offline: set[str] = set()

    def __call__(self, bucket_name: str) -> RecordingSink:
        if bucket_name not in self.sinks:
            self.sinks[bucket_name] = RecordingSink(
                bucket_name, fail=bucket_name in self.offline
            )
        return self.sinks[bucket_name]

    @property
    def upload_count(self) -> int:
        return sum(len(s.uploads) for s in self.sinks.values())


class CountingStack(ProductStack):
    """ProductStack that counts how often it was rendered."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.render_count = 0

    def render(self):
        self.render_count += 1
        return super().render()


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test files."""
    return tmp_path


@pytest.fixture
def snapshot_dir(tmp_dir: Path) -> Path:
    return tmp_dir / "snapshots"


@pytest.fixture
def snapshot_guard(snapshot_dir: Path) -> SnapshotGuard:
    return SnapshotGuard(snapshot_dir)


@pytest.fixture
def manifest_path(tmp_dir: Path) -> Path:
    return tmp_dir / "versions.json"


@pytest.fixture
def json_store(manifest_path: Path) -> JsonManifestStore:
    """Provide a JSON manifest store in a temp directory."""
    return JsonManifestStore(manifest_path)


@pytest.fixture
def memory_store() -> InMemoryManifestStore:
    return InMemoryManifestStore()


@pytest.fixture
def sinks() -> SinkRegistry:
    return SinkRegistry()


@pytest.fixture
def resolver(
    memory_store: InMemoryManifestStore, sinks: SinkRegistry, snapshot_dir: Path
) -> VersionResolver:
    """Resolver wired to an in-memory manifest and recording sinks."""
    return VersionResolver(
        memory_store,
        sinks,
        default_bucket="default-assets",
        url_base=URL_BASE,
        snapshot_directory=snapshot_dir,
    )


@pytest.fixture
def test_config(tmp_dir: Path) -> StackforgeConfig:
    """Config with every path inside the temp directory."""
    return StackforgeConfig(
        manifest_path=tmp_dir / "versions.json",
        snapshot_directory=tmp_dir / "snapshots",
        asset_root=tmp_dir / "assets",
        asset_bucket="default-assets",
        asset_url_base=URL_BASE,
        output_directory=tmp_dir / "out",
    )


@pytest.fixture
def make_stack() -> Callable[..., CountingStack]:
    """Factory fixture: build a stack with one bucket resource.

    ``marker`` lands in the bucket name so that different markers give
    different template bodies.
    """

    def _factory(
        stack_id: str = "S",
        marker: str = "one",
        **kwargs: Any,
    ) -> CountingStack:
        stack = CountingStack(stack_id, **kwargs)
        stack.add_resource(
            "Bucket", "AWS::S3::Bucket", {"BucketName": f"bucket-{marker}"}
        )
        return stack

    return _factory
