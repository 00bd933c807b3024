# SPDX-License-Identifier: Apache-2.0
"""Crash-safe persistence of language files and the sync cache.

Every write serializes the complete mapping first, writes it to a sibling
temporary file, fsyncs it and moves it over the target with ``os.replace``.
A reader therefore sees either the old file or the new one, never a torn
write. Files are rewritten in full after each translated key.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any

from locale_sync.sync.cache import SyncCache
from locale_sync.sync.errors import PersistenceError, StateLoadError
from locale_sync.sync.fingerprint import normalize_mapping

logger = logging.getLogger(__name__)


def serialize_json(data: Any) -> str:
    """Pretty-printed, UTF-8 friendly JSON with a trailing newline."""
    return json.dumps(data, ensure_ascii=False, indent=2) + "\n"


def atomic_write_text(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` via temp file + ``os.replace``.

    Raises:
        OSError: If any filesystem step fails. The temp file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp.{os.getpid()}")
    try:
        with tmp_path.open("w", encoding="utf-8", newline="\n") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def read_json_object(path: Path) -> dict[str, Any] | None:
    """Read a JSON object from ``path``.

    Returns:
        The parsed mapping, or None if the file does not exist.

    Raises:
        StateLoadError: If the file is unreadable, not JSON, or not an object.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise StateLoadError(f"Cannot read {path}", cause=exc) from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise StateLoadError(f"{path} is not valid JSON", cause=exc) from exc
    if not isinstance(data, dict):
        raise StateLoadError(f"{path} does not contain a JSON object")
    return data


class OutputWriter:
    """Writes language files and the cache file under one output directory."""

    def __init__(self, output_dir: Path, cache_path: Path) -> None:
        self._output_dir = output_dir
        self._cache_path = cache_path

    @property
    def cache_path(self) -> Path:
        return self._cache_path

    def language_path(self, lang: str) -> Path:
        """Path of the language file (``<output_dir>/<lang>.json``)."""
        return self._output_dir / f"{lang.lower()}.json"

    def load_language(self, lang: str) -> dict[str, Any] | None:
        """Load a language file with normalized keys (None if absent)."""
        data = read_json_object(self.language_path(lang))
        return None if data is None else normalize_mapping(data)

    def load_cache(self) -> SyncCache:
        """Load the cache file, or an empty cache on first run."""
        data = read_json_object(self._cache_path)
        if data is None:
            logger.info("No cache file at %s, starting fresh", self._cache_path)
            return SyncCache()
        return SyncCache.from_dict(data)

    async def write_language(self, lang: str, data: dict[str, Any]) -> None:
        """Persist a language's full mapping.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        path = self.language_path(lang)
        await self._write(path, serialize_json(normalize_mapping(data)))

    async def write_cache(self, cache: SyncCache) -> None:
        """Persist the full cache.

        Raises:
            PersistenceError: If the file cannot be written.
        """
        await self._write(self._cache_path, serialize_json(cache.to_dict()))

    async def commit(
        self,
        lang: str,
        data: dict[str, Any],
        cache: SyncCache,
        key: str,
        key_fingerprint: str,
    ) -> None:
        """Persist one translated key.

        The language file is written first. Only once it is on disk is the
        key's fingerprint recorded in ``cache`` and the cache file rewritten,
        so a crash in between leaves the key looking stale, never fresh.
        """
        await self.write_language(lang, data)
        cache.record(lang, key, key_fingerprint)
        await self.write_cache(cache)

    async def _write(self, path: Path, text: str) -> None:
        # Serialized before suspending so later mutations cannot leak in.
        try:
            await asyncio.to_thread(atomic_write_text, path, text)
        except OSError as exc:
            raise PersistenceError(f"Cannot write {path}", cause=exc) from exc
        logger.debug("Wrote %s", path)
