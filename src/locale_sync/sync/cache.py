# SPDX-License-Identifier: Apache-2.0
"""Synchronization cache model.

The cache remembers, per language and key, the fingerprint of the reference
value a stored translation was produced from. It never stores fingerprints
of translated text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from locale_sync.sync.errors import StateLoadError
from locale_sync.sync.fingerprint import normalize_key, normalize_mapping


@dataclass
class LanguageCache:
    """Fingerprints recorded for one language."""

    key_fingerprints: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"keyFingerprints": dict(self.key_fingerprints)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LanguageCache:
        """Create from dictionary."""
        raw = data.get("keyFingerprints") or {}
        if not isinstance(raw, dict):
            raise StateLoadError("Cache entry 'keyFingerprints' must be an object")
        return cls(
            key_fingerprints={
                key: str(value)
                for key, value in normalize_mapping(raw).items()
                if value
            }
        )


@dataclass
class SyncCache:
    """Persisted synchronization state for one output directory."""

    reference_fingerprint: str = ""
    last_run: str | None = None
    languages: dict[str, LanguageCache] = field(default_factory=dict)

    def language(self, lang: str) -> LanguageCache:
        """Return the entry for ``lang``, creating it if needed."""
        entry = self.languages.get(lang)
        if entry is None:
            entry = LanguageCache()
            self.languages[lang] = entry
        return entry

    def lookup(self, lang: str, key: str) -> str | None:
        """Cached reference fingerprint for ``(lang, key)``, if any."""
        entry = self.languages.get(lang)
        if entry is None:
            return None
        return entry.key_fingerprints.get(normalize_key(key))

    def record(self, lang: str, key: str, key_fingerprint: str) -> None:
        """Set the fingerprint for ``(lang, key)``."""
        self.language(lang).key_fingerprints[normalize_key(key)] = key_fingerprint

    def touch(self, now: datetime | None = None) -> None:
        """Stamp ``last_run`` with the current UTC time."""
        now = now or datetime.now(timezone.utc)
        self.last_run = now.isoformat()

    @property
    def known_languages(self) -> list[str]:
        return list(self.languages)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the on-disk dictionary layout."""
        return {
            "referenceFingerprint": self.reference_fingerprint,
            "lastRun": self.last_run,
            "perLanguage": {
                lang: entry.to_dict() for lang, entry in self.languages.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncCache:
        """Create from the on-disk dictionary layout.

        Raises:
            StateLoadError: If the layout is malformed.
        """
        per_language = data.get("perLanguage") or {}
        if not isinstance(per_language, dict):
            raise StateLoadError("Cache field 'perLanguage' must be an object")

        languages: dict[str, LanguageCache] = {}
        for lang, entry in per_language.items():
            if not isinstance(entry, dict):
                raise StateLoadError(f"Cache entry for language '{lang}' must be an object")
            languages[str(lang)] = LanguageCache.from_dict(entry)

        last_run = data.get("lastRun")
        return cls(
            reference_fingerprint=str(data.get("referenceFingerprint") or ""),
            last_run=str(last_run) if last_run else None,
            languages=languages,
        )
