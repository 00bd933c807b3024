# SPDX-License-Identifier: Apache-2.0
"""Concurrent dispatch of translation work for one language.

A :class:`LanguageScheduler` runs a bounded pool of worker tasks against one
translator. Each key is owned by a single worker for its whole retry life,
so a (language, key) pair never has two calls in flight. Rate-limit signals
feed a shared :class:`BackoffClock`; every dispatch waits until the clock
allows it. Successful results are handed to one write-back task, which is
the only place shared state is mutated.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum

from locale_sync.sync.progress import EventKind, ProgressCallback, SyncEvent
from locale_sync.translators.base import (
    ConfigurationError,
    EmptyTranslationError,
    RateLimitedError,
    TranslationError,
    TranslatorBackend,
)

logger = logging.getLogger(__name__)

WriteBack = Callable[["WorkItem", str], Awaitable[None]]


class SchedulerState(str, Enum):
    """Lifecycle of a language run."""

    IDLE = "idle"
    RUNNING = "running"
    BACKOFF = "backoff"
    DONE = "done"


class BackoffClock:
    """Shared rate-limit delay for one language.

    Pure state: callers pass the current time in, nothing sleeps here.
    While any key is rate-limited the delay only grows; it resets once the
    last rate-limited key resolves.
    """

    def __init__(self, default_delay: float = 2.0, max_delay: float = 60.0) -> None:
        self._default_delay = default_delay
        self._max_delay = max_delay
        self._delay = 0.0
        self._resume_at = 0.0
        self._limited: set[str] = set()

    @property
    def delay(self) -> float:
        """Current backoff delay in seconds (0 when not rate-limited)."""
        return self._delay

    @property
    def active(self) -> bool:
        """Whether any key is currently rate-limited."""
        return bool(self._limited)

    def remaining(self, now: float) -> float:
        """Seconds left before the next dispatch is allowed."""
        return max(0.0, self._resume_at - now)

    def rate_limited(self, key: str, now: float, retry_after: float | None = None) -> float:
        """Register a rate-limit signal for ``key``.

        Args:
            key: Key whose call was rate-limited.
            now: Current time.
            retry_after: Provider-suggested delay, if any.

        Returns:
            Seconds to wait before dispatching again.
        """
        if retry_after is not None and retry_after > 0:
            candidate = retry_after
        elif self._delay > 0:
            candidate = min(self._delay * 2, self._max_delay)
        else:
            candidate = min(self._default_delay, self._max_delay)

        self._delay = max(self._delay, candidate)
        self._resume_at = max(self._resume_at, now + self._delay)
        self._limited.add(key)
        return self.remaining(now)

    def resolved(self, key: str) -> None:
        """Mark ``key`` as no longer rate-limited."""
        self._limited.discard(key)
        if not self._limited:
            self._delay = 0.0


@dataclass(frozen=True)
class WorkItem:
    """One key to translate.

    Attributes:
        key: Normalized key.
        text: Reference value to translate.
        fingerprint: Fingerprint of ``text``, recorded after success.
        reason: Why the key needs translation (for logging).
    """

    key: str
    text: str
    fingerprint: str
    reason: str = ""


@dataclass
class KeyFailure:
    """A key that could not be translated in this run."""

    key: str
    error: Exception
    attempts: int


@dataclass
class SchedulerOutcome:
    """Keys resolved by a scheduler run."""

    translated: list[str] = field(default_factory=list)
    failures: list[KeyFailure] = field(default_factory=list)

    @property
    def failed(self) -> list[str]:
        return [failure.key for failure in self.failures]


class LanguageScheduler:
    """Translate a batch of keys for one target language."""

    def __init__(
        self,
        translator: TranslatorBackend,
        source_lang: str,
        target_lang: str,
        *,
        concurrency: int = 4,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        backoff_delay: float = 2.0,
        max_backoff_delay: float = 60.0,
        max_rate_limit_retries: int = 10,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self._translator = translator
        self._source_lang = source_lang
        self._target_lang = target_lang
        self._concurrency = max(1, concurrency)
        self._max_retries = max(0, max_retries)
        self._retry_delay = retry_delay
        self._max_rate_limit_retries = max(0, max_rate_limit_retries)
        self._progress_callback = progress_callback
        self._clock = BackoffClock(backoff_delay, max_backoff_delay)
        self._state = SchedulerState.IDLE
        self._started = 0
        self._total = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def backoff(self) -> BackoffClock:
        return self._clock

    async def run(self, items: Iterable[WorkItem], write_back: WriteBack) -> SchedulerOutcome:
        """Translate ``items`` and pass each result to ``write_back``.

        ``write_back`` is called from a single task, one result at a time.

        Raises:
            ConfigurationError: If the translator rejects its configuration.
            Exception: Whatever ``write_back`` raises; dispatch stops.
        """
        outcome = SchedulerOutcome()
        unique = self._dedupe(items)
        if not unique:
            self._set_state(SchedulerState.DONE)
            return outcome

        pending: asyncio.Queue[WorkItem] = asyncio.Queue()
        for item in unique:
            pending.put_nowait(item)
        results: asyncio.Queue[tuple[WorkItem, str] | None] = asyncio.Queue()
        self._total = len(unique)
        self._started = 0

        workers = [
            asyncio.create_task(self._worker(pending, results, outcome))
            for _ in range(min(self._concurrency, len(unique)))
        ]
        writer = asyncio.create_task(self._write_back_loop(results, write_back, outcome))
        worker_group = asyncio.gather(*workers)

        try:
            done, _ = await asyncio.wait(
                {worker_group, writer}, return_when=asyncio.FIRST_COMPLETED
            )
            if writer in done:
                writer.result()
            await worker_group
            await results.put(None)
            await writer
        finally:
            # Cancel workers that are still dispatching.
            for task in (*workers, writer):
                if not task.done():
                    task.cancel()
            await asyncio.gather(*workers, writer, worker_group, return_exceptions=True)
            self._set_state(SchedulerState.DONE)

        return outcome

    def _dedupe(self, items: Iterable[WorkItem]) -> list[WorkItem]:
        seen: set[str] = set()
        unique: list[WorkItem] = []
        for item in items:
            if item.key in seen:
                logger.warning("Ignoring duplicate work item for key %s", item.key)
                continue
            seen.add(item.key)
            unique.append(item)
        return unique

    async def _worker(
        self,
        pending: asyncio.Queue[WorkItem],
        results: asyncio.Queue[tuple[WorkItem, str] | None],
        outcome: SchedulerOutcome,
    ) -> None:
        while True:
            try:
                item = pending.get_nowait()
            except asyncio.QueueEmpty:
                return
            self._started += 1
            translated = await self._translate_item(item, self._started, outcome)
            if translated is not None:
                await results.put((item, translated))

    async def _translate_item(
        self,
        item: WorkItem,
        position: int,
        outcome: SchedulerOutcome,
    ) -> str | None:
        failures = 0
        rate_limits = 0
        attempt = 0
        try:
            while True:
                await self._wait_for_backoff()
                attempt += 1
                if self._state is SchedulerState.IDLE:
                    self._set_state(SchedulerState.RUNNING)
                self._emit(
                    EventKind.DISPATCH,
                    key=item.key,
                    attempt=attempt,
                    current=position,
                    total=self._total,
                    message=item.reason,
                )
                try:
                    text = await self._translator.translate(
                        item.text, self._source_lang, self._target_lang
                    )
                    if not text or not text.strip():
                        raise EmptyTranslationError(item.text)
                    return text
                except ConfigurationError:
                    raise
                except RateLimitedError as exc:
                    rate_limits += 1
                    if rate_limits > self._max_rate_limit_retries:
                        self._fail(item, exc, attempt, outcome)
                        return None
                    delay = self._clock.rate_limited(
                        item.key, self._now(), exc.retry_after
                    )
                    self._set_state(SchedulerState.BACKOFF)
                    self._emit(
                        EventKind.RATE_LIMITED, key=item.key, attempt=attempt, delay=delay
                    )
                except Exception as exc:
                    if not isinstance(exc, TranslationError):
                        logger.warning(
                            "Unexpected %s from %s for %s",
                            type(exc).__name__,
                            self._translator.name,
                            item.key,
                        )
                    failures += 1
                    if failures > self._max_retries:
                        self._fail(item, exc, attempt, outcome)
                        return None
                    delay = self._retry_delay * (2 ** (failures - 1))
                    self._emit(
                        EventKind.RETRY,
                        key=item.key,
                        attempt=attempt,
                        delay=delay,
                        message=str(exc),
                    )
                    await asyncio.sleep(delay)
        finally:
            self._clock.resolved(item.key)

    async def _wait_for_backoff(self) -> None:
        remaining = self._clock.remaining(self._now())
        while remaining > 0:
            await asyncio.sleep(remaining)
            remaining = self._clock.remaining(self._now())
        if self._state is SchedulerState.BACKOFF:
            self._set_state(SchedulerState.RUNNING)

    async def _write_back_loop(
        self,
        results: asyncio.Queue[tuple[WorkItem, str] | None],
        write_back: WriteBack,
        outcome: SchedulerOutcome,
    ) -> None:
        while True:
            entry = await results.get()
            if entry is None:
                return
            item, translated = entry
            await write_back(item, translated)
            outcome.translated.append(item.key)
            self._emit(EventKind.TRANSLATED, key=item.key, message=translated)

    def _fail(
        self,
        item: WorkItem,
        error: Exception,
        attempts: int,
        outcome: SchedulerOutcome,
    ) -> None:
        outcome.failures.append(KeyFailure(key=item.key, error=error, attempts=attempts))
        self._emit(EventKind.FAILED, key=item.key, attempt=attempts, message=str(error))

    def _set_state(self, state: SchedulerState) -> None:
        if state is self._state:
            return
        previous = self._state
        self._state = state
        self._emit(EventKind.STATE, message=f"{previous.value} -> {state.value}")

    def _emit(self, kind: EventKind, **fields: object) -> None:
        if self._progress_callback is None:
            return
        self._progress_callback(SyncEvent(kind=kind, language=self._target_lang, **fields))  # type: ignore[arg-type]

    @staticmethod
    def _now() -> float:
        return asyncio.get_running_loop().time()
