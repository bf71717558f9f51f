"""Version declarations — what a product asks for at build time.

A declaration is a closed tagged variant on ``source``:

* ``"fresh"`` — render the stack now, hash it, upload it.
* ``"history"`` — reuse a version recorded by a previous build.

Optional flags are resolved exactly once by :func:`normalize_declaration`
so that nothing downstream has to guess a default.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stackforge.models.templates import TemplateSource, check_name_segment


class VersionSource(str, Enum):
    FRESH = "fresh"
    HISTORY = "history"


class FreshVersion(BaseModel):
    """A version built from the stack's current template."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    source: Literal["fresh"] = "fresh"
    version_name: str
    stack: TemplateSource
    description: str | None = None
    validate_template: bool | None = None
    # None: no snapshot is kept. False: snapshot kept but may change.
    # True: snapshot is an integrity contract.
    locked: bool | None = None
    snapshot_directory: Path | None = None

    @field_validator("version_name")
    @classmethod
    def version_name_is_file_safe(cls, v: str) -> str:
        return check_name_segment(v)


class CachedVersion(BaseModel):
    """A version satisfied by a record from a previous build."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    source: Literal["history"] = "history"
    version_name: str
    stack: TemplateSource
    description: str | None = None
    validate_template: bool | None = None

    @field_validator("version_name")
    @classmethod
    def version_name_is_file_safe(cls, v: str) -> str:
        return check_name_segment(v)


VersionDeclaration = Annotated[
    Union[FreshVersion, CachedVersion], Field(discriminator="source")
]


class NormalizedVersion(BaseModel):
    """A declaration with every optional flag resolved."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    source: VersionSource
    version_name: str
    stack: TemplateSource
    description: str
    validate_template: bool
    # Only meaningful for cached versions: whether the caller supplied
    # the field or it should be taken from the manifest record.
    description_given: bool
    validate_template_given: bool
    track_snapshot: bool
    locked: bool
    snapshot_directory: Path

    @property
    def stack_id(self) -> str:
        return self.stack.stack_id


def normalize_declaration(
    declaration: FreshVersion | CachedVersion,
    default_snapshot_directory: Path,
) -> NormalizedVersion:
    """Resolve defaults for one declaration.

    Validation defaults to enabled, the description to empty, and snapshot
    tracking is switched on only when the declaration states a lock flag
    (either value).
    """
    if isinstance(declaration, FreshVersion):
        track_snapshot = declaration.locked is not None
        locked = bool(declaration.locked)
        snapshot_directory = declaration.snapshot_directory or default_snapshot_directory
        source = VersionSource.FRESH
    else:
        track_snapshot = False
        locked = False
        snapshot_directory = default_snapshot_directory
        source = VersionSource.HISTORY

    return NormalizedVersion(
        source=source,
        version_name=declaration.version_name,
        stack=declaration.stack,
        description=declaration.description or "",
        validate_template=(
            True if declaration.validate_template is None else declaration.validate_template
        ),
        description_given=declaration.description is not None,
        validate_template_given=declaration.validate_template is not None,
        track_snapshot=track_snapshot,
        locked=locked,
        snapshot_directory=Path(snapshot_directory),
    )
