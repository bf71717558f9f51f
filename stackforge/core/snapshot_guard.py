"""Snapshot guard — detects drift of locked product stack versions.

A snapshot is the on-disk copy of the template body a version was built
with, stored as ``{directory}/{stack_path_id}.{stack_id}.{version}.template.json``.
For unlocked versions the snapshot is a cache that follows the latest
build. For locked versions it is an integrity contract: once written it
may only change if the version is renamed or the stale file is removed
by hand.
"""

from __future__ import annotations

import logging
from pathlib import Path

from stackforge.core.errors import SnapshotDrift
from stackforge.core.hasher import template_digest
from stackforge.models.templates import SnapshotKey

logger = logging.getLogger(__name__)

SNAPSHOT_SUFFIX = ".template.json"


class SnapshotGuard:
    """Reads and reconciles snapshots in one directory.

    Parameters
    ----------
    directory:
        Snapshot directory. Created on the first write.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, key: SnapshotKey) -> Path:
        return self._directory / key.file_name

    def read(self, key: SnapshotKey) -> bytes | None:
        """Return the snapshot bytes for ``key``, or None if absent."""
        path = self.path_for(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def reconcile(self, key: SnapshotKey, fresh: bytes, locked: bool) -> None:
        """Bring the snapshot for ``key`` in line with ``fresh``.

        The first write always wins. Identical bytes are left alone.
        Different bytes overwrite the snapshot unless ``locked`` is set,
        in which case ``SnapshotDrift`` is raised and the file is kept.
        """
        path = self.path_for(key)
        previous = self.read(key)

        if previous is None:
            self._write(path, fresh)
            logger.info("Wrote snapshot %s", path)
            return

        if previous == fresh:
            logger.debug("Snapshot %s unchanged", path)
            return

        if locked:
            raise SnapshotDrift(key.version_name, self._directory, key.file_name)

        self._write(path, fresh)
        logger.warning(
            "Template for unlocked version %s changed, snapshot %s updated (%s -> %s)",
            key.version_name,
            path,
            template_digest(previous)[:12],
            template_digest(fresh)[:12],
        )

    def _write(self, path: Path, data: bytes) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def list_snapshots(self) -> list[Path]:
        """All snapshot files in the directory, sorted by name."""
        if not self._directory.exists():
            return []
        return sorted(self._directory.glob(f"*{SNAPSHOT_SUFFIX}"))
