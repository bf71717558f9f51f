"""Hashing helpers for template content addressing.

Digests are always taken over the exact bytes that get uploaded and
snapshotted, so the serialization lives here too.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any


def render_template_json(template: dict[str, Any]) -> bytes:
    """Serialize a template document the way it is uploaded and snapshotted.

    Keys keep insertion order, so the resource graph's own ordering decides
    the layout. Two-space indent, UTF-8.
    """
    return json.dumps(template, indent=2).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def template_digest(data: bytes) -> str:
    """Digest of a rendered template body (64 lowercase hex characters)."""
    return sha256_hex(data)
