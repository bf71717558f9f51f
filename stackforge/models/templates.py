"""Template document and storage location models (immutable)."""

from __future__ import annotations

import abc

from pydantic import BaseModel, ConfigDict, field_validator

from stackforge.core.hasher import template_digest

_PATH_SEPARATORS = ("/", "\\")


def check_name_segment(value: str) -> str:
    """Reject names that cannot be embedded in a single file name."""
    if not value:
        raise ValueError("name must not be empty")
    if any(sep in value for sep in _PATH_SEPARATORS):
        raise ValueError(f"name '{value}' must not contain a path separator")
    return value


class TemplateDocument(BaseModel):
    """One rendered template body — produced once per render, never mutated.

    The digest is derived from the body, so two documents with the same
    bytes always share an identity regardless of file name.
    """

    model_config = ConfigDict(frozen=True)

    body: bytes
    file_name: str

    @property
    def digest(self) -> str:
        """SHA-256 hex digest of the body."""
        return template_digest(self.body)

    @property
    def size_bytes(self) -> int:
        return len(self.body)


class ArtifactLocation(BaseModel):
    """Where an uploaded template lives in durable storage."""

    model_config = ConfigDict(frozen=True)

    bucket_name: str
    object_key: str
    http_url: str


class SnapshotKey(BaseModel):
    """Identifies one on-disk snapshot of a product stack version."""

    model_config = ConfigDict(frozen=True)

    stack_path_id: str
    stack_id: str
    version_name: str

    @field_validator("stack_path_id", "stack_id", "version_name")
    @classmethod
    def single_path_segment(cls, v: str) -> str:
        return check_name_segment(v)

    @property
    def file_name(self) -> str:
        return f"{self.stack_path_id}.{self.stack_id}.{self.version_name}.template.json"


class TemplateSource(abc.ABC):
    """Something that can render a product stack template.

    Implementations expose the identity of the stack they render so that
    snapshots and manifest records can be keyed on it.

    Attributes
    ----------
    stack_id:
        Logical id of the product stack within its product.
    path_id:
        Unique id of the stack across the whole application, used as the
        first segment of snapshot file names.
    asset_bucket:
        Bucket configured for the stack's assets, or ``None`` when the
        bucket is only known once a fresh build has been uploaded.
    """

    stack_id: str
    path_id: str
    asset_bucket: str | None = None

    @abc.abstractmethod
    def render(self) -> TemplateDocument:
        """Render the template. Must be deterministic for identical input."""
