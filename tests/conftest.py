# SPDX-License-Identifier: Apache-2.0
"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import pytest


class ScriptedTranslator:
    """In-memory translator with per-text scripted outcomes.

    Each text maps to a list of outcomes consumed one call at a time: an
    exception instance is raised, anything else is returned as the
    translation. Unscripted texts translate to ``"[<lang>] <text>"``.
    """

    def __init__(
        self,
        responses: dict[str, list[Any]] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.calls: list[tuple[str, str, str]] = []
        self.delay = delay
        self.max_in_flight = 0
        self.duplicate_dispatch = False
        self._responses = {text: list(items) for text, items in (responses or {}).items()}
        self._in_flight: set[tuple[str, str]] = set()

    @property
    def name(self) -> str:
        return "scripted"

    async def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        self.calls.append((text, source_lang, target_lang))
        marker = (target_lang, text)
        if marker in self._in_flight:
            self.duplicate_dispatch = True
        self._in_flight.add(marker)
        self.max_in_flight = max(self.max_in_flight, len(self._in_flight))
        try:
            await asyncio.sleep(self.delay)
            script = self._responses.get(text)
            if script:
                outcome = script.pop(0)
                if isinstance(outcome, BaseException):
                    raise outcome
                return str(outcome)
            return f"[{target_lang}] {text}"
        finally:
            self._in_flight.discard(marker)

    async def close(self) -> None:
        return None

    def calls_for(self, target_lang: str) -> list[str]:
        return [text for text, _, lang in self.calls if lang == target_lang]


@pytest.fixture
def scripted_translator() -> type[ScriptedTranslator]:
    """Factory for scripted translators."""
    return ScriptedTranslator


@pytest.fixture
def write_json():
    """Write a JSON file and return its path."""

    def _write(path: Path, data: Any) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        return path

    return _write
