# SPDX-License-Identifier: Apache-2.0
"""Content fingerprints and key normalization."""

from __future__ import annotations

import hashlib
import unicodedata
from collections.abc import Mapping
from typing import Any

FINGERPRINT_ALGORITHM = "sha256"


def fingerprint(content: bytes | str) -> str:
    """Return the hex SHA-256 digest of ``content``.

    Strings are encoded as UTF-8 first, so ``fingerprint("x")`` and
    ``fingerprint(b"x")`` agree.
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def normalize_key(key: str) -> str:
    """Canonical (NFC) form of a key."""
    return unicodedata.normalize("NFC", key)


def normalize_mapping(data: Mapping[str, Any]) -> dict[str, Any]:
    """Copy ``data`` with every key in canonical form.

    Insertion order is preserved. If two keys collapse to the same canonical
    form, the later one wins.
    """
    return {normalize_key(str(key)): value for key, value in data.items()}
