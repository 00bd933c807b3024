# SPDX-License-Identifier: Apache-2.0
"""Incremental synchronization engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from locale_sync.sync.cache import SyncCache
from locale_sync.sync.decision import Action, decide
from locale_sync.sync.progress import EventKind, ProgressCallback, SyncEvent
from locale_sync.sync.reference import (
    DEFAULT_EXPORT_NAME,
    ReferenceDocument,
    ReferenceLoader,
    RunContext,
    load_reference,
    loader_for_path,
)
from locale_sync.sync.scheduler import KeyFailure, LanguageScheduler, WorkItem
from locale_sync.sync.writer import OutputWriter
from locale_sync.translators.base import ConfigurationError, TranslatorBackend

logger = logging.getLogger(__name__)

DEFAULT_STATE_FILENAME = ".localization.json"


@dataclass
class SyncConfig:
    """Synchronization configuration."""

    reference_path: Path
    output_dir: Path

    # Empty: reuse the languages recorded in the cache file
    languages: list[str] = field(default_factory=list)
    reference_language: str = "en"
    reference_export: str = DEFAULT_EXPORT_NAME
    state_file: Path | None = None

    force: bool = False

    max_retries: int = 3
    retry_delay: float = 1.0
    concurrency: int = 4

    # Rate-limit backoff
    backoff_delay: float = 2.0
    max_backoff_delay: float = 60.0
    max_rate_limit_retries: int = 10

    def __post_init__(self) -> None:
        self.reference_path = Path(self.reference_path)
        self.output_dir = Path(self.output_dir)
        if self.state_file is not None:
            self.state_file = Path(self.state_file)
        if self.max_retries < 0:
            raise ConfigurationError("max_retries must be >= 0")
        if self.concurrency < 1:
            raise ConfigurationError("concurrency must be >= 1")
        if self.max_rate_limit_retries < 0:
            raise ConfigurationError("max_rate_limit_retries must be >= 0")

    @property
    def cache_path(self) -> Path:
        """Location of the cache file."""
        if self.state_file is not None:
            return self.state_file
        return self.output_dir / DEFAULT_STATE_FILENAME


@dataclass
class LanguageReport:
    """Per-language result of a run."""

    language: str
    translated: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    passed_through: list[str] = field(default_factory=list)
    failures: list[KeyFailure] = field(default_factory=list)

    @property
    def failed(self) -> list[str]:
        return [failure.key for failure in self.failures]

    def summary(self) -> str:
        return (
            f"{self.language}: {len(self.translated)} translated, "
            f"{len(self.skipped)} up to date, "
            f"{len(self.passed_through)} passed through, "
            f"{len(self.failures)} failed"
        )


@dataclass
class SyncResult:
    """Result of a synchronization run."""

    reference_fingerprint: str
    reference_changed: bool
    reports: list[LanguageReport] = field(default_factory=list)

    @property
    def translated_count(self) -> int:
        return sum(len(report.translated) for report in self.reports)

    @property
    def failed_count(self) -> int:
        return sum(len(report.failures) for report in self.reports)

    @property
    def has_failures(self) -> bool:
        return self.failed_count > 0


class SyncEngine:
    """Keep per-language files in sync with one reference document."""

    def __init__(
        self,
        translator: TranslatorBackend,
        config: SyncConfig,
        progress_callback: ProgressCallback | None = None,
        loader: ReferenceLoader | None = None,
    ) -> None:
        """Initialize SyncEngine.

        Args:
            translator: Provider used for every language.
            config: Run configuration.
            progress_callback: Observer for progress events.
            loader: Reference loader; chosen by file suffix when omitted.
        """
        self._translator = translator
        self._config = config
        self._progress_callback = progress_callback
        self._loader = loader
        self._writer = OutputWriter(config.output_dir, config.cache_path)

    async def run(self) -> SyncResult:
        """Synchronize every configured language.

        Languages are processed one after another. Per-key failures are
        collected in the result; fatal errors propagate.

        Raises:
            ConfigurationError: If no languages are configured or known.
            ReferenceLoadError: If the reference document cannot be loaded.
            StateLoadError: If an existing cache or output file is corrupt.
            PersistenceError: If a file cannot be written.
        """
        started = datetime.now(timezone.utc).isoformat()
        with RunContext() as context:
            loader = self._loader or loader_for_path(
                self._config.reference_path,
                context.scratch_dir,
                self._config.reference_export,
            )
            reference = load_reference(self._config.reference_path, loader)
            cache = self._writer.load_cache()
            languages = self._resolve_languages(cache)
            snapshot = cache.to_dict()

            reference_changed = reference.fingerprint != cache.reference_fingerprint
            if reference_changed:
                logger.info("Reference file has changed since last run")
            cache.reference_fingerprint = reference.fingerprint

            result = SyncResult(
                reference_fingerprint=reference.fingerprint,
                reference_changed=reference_changed,
            )
            for lang in languages:
                report = await self._sync_language(lang, reference, cache, started)
                logger.info(report.summary())
                result.reports.append(report)

            if cache.to_dict() != snapshot:
                cache.last_run = started
                await self._writer.write_cache(cache)

        return result

    def _resolve_languages(self, cache: SyncCache) -> list[str]:
        # "FR" and "fr" share one file; the first spelling goes to the provider.
        unique: dict[str, str] = {}
        for lang in self._config.languages or cache.known_languages:
            unique.setdefault(lang.lower(), lang)
        languages = list(unique.values())
        if not languages:
            raise ConfigurationError(
                "No languages specified. Pass languages explicitly or run once "
                f"with languages so they are recorded in {self._config.cache_path.name}"
            )
        return languages

    async def _sync_language(
        self,
        lang: str,
        reference: ReferenceDocument,
        cache: SyncCache,
        started: str,
    ) -> LanguageReport:
        report = LanguageReport(language=lang)
        existing = self._writer.load_language(lang)
        if existing is None:
            logger.info("Creating new file for language: %s", lang)
        output: dict[str, Any] = dict(existing or {})
        output_changed = existing is None
        work: list[WorkItem] = []

        cache_lang = _cache_language(cache, lang)
        cache.language(cache_lang)
        for key, value in reference.values.items():
            decision = decide(
                value, output.get(key), cache.lookup(cache_lang, key), self._config.force
            )
            self._emit(SyncEvent(EventKind.DECISION, lang, key, decision.reason.value))

            if decision.action is Action.PASS_THROUGH:
                if key not in output or output[key] != value:
                    output[key] = value
                    output_changed = True
                report.passed_through.append(key)
            elif decision.action is Action.SKIP:
                # Re-affirm the entry; the value is unchanged.
                cache.record(cache_lang, key, decision.reference_fingerprint or "")
                report.skipped.append(key)
            else:
                work.append(
                    WorkItem(
                        key=key,
                        text=value,
                        fingerprint=decision.reference_fingerprint or "",
                        reason=decision.reason.value,
                    )
                )

        if output_changed:
            await self._writer.write_language(lang, _ordered(output, reference))

        async def write_back(item: WorkItem, translated: str) -> None:
            output[item.key] = translated
            cache.last_run = started
            await self._writer.commit(
                cache_lang, _ordered(output, reference), cache, item.key, item.fingerprint
            )

        scheduler = LanguageScheduler(
            self._translator,
            self._config.reference_language,
            lang,
            concurrency=self._config.concurrency,
            max_retries=self._config.max_retries,
            retry_delay=self._config.retry_delay,
            backoff_delay=self._config.backoff_delay,
            max_backoff_delay=self._config.max_backoff_delay,
            max_rate_limit_retries=self._config.max_rate_limit_retries,
            progress_callback=self._progress_callback,
        )
        outcome = await scheduler.run(work, write_back)
        report.translated.extend(outcome.translated)
        report.failures.extend(outcome.failures)
        return report

    def _emit(self, event: SyncEvent) -> None:
        if self._progress_callback is not None:
            self._progress_callback(event)


def _cache_language(cache: SyncCache, lang: str) -> str:
    """Existing cache entry name for ``lang``, matched case-insensitively."""
    for known in cache.known_languages:
        if known.lower() == lang.lower():
            return known
    return lang


def _ordered(output: dict[str, Any], reference: ReferenceDocument) -> dict[str, Any]:
    """Reference key order first, then keys only present in the output."""
    ordered = {key: output[key] for key in reference.values if key in output}
    for key, value in output.items():
        ordered.setdefault(key, value)
    return ordered
