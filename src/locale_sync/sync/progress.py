# SPDX-License-Identifier: Apache-2.0
"""Progress events emitted by the engine and scheduler."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    """Kinds of progress events."""

    STATE = "state"
    DECISION = "decision"
    DISPATCH = "dispatch"
    RATE_LIMITED = "rate_limited"
    RETRY = "retry"
    TRANSLATED = "translated"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncEvent:
    """One observable step of a language run."""

    kind: EventKind
    language: str
    key: str | None = None
    message: str = ""
    attempt: int = 0
    delay: float = 0.0
    current: int = 0
    total: int = 0


@runtime_checkable
class ProgressCallback(Protocol):
    """Progress callback protocol."""

    def __call__(self, event: SyncEvent) -> None: ...


class LoggingProgress:
    """Render progress events as log records."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def __call__(self, event: SyncEvent) -> None:
        kind = event.kind
        where = f"{event.language}/{event.key}" if event.key else event.language
        if kind is EventKind.STATE:
            self._log.debug("[%s] %s", event.language, event.message)
        elif kind is EventKind.DECISION:
            self._log.debug("%s: %s", where, event.message)
        elif kind is EventKind.DISPATCH:
            suffix = f" (attempt {event.attempt})" if event.attempt > 1 else ""
            self._log.info(
                "[%d/%d] Translating %s%s", event.current, event.total, where, suffix
            )
        elif kind is EventKind.RATE_LIMITED:
            self._log.warning(
                "Rate limited on %s; sleeping for %.1fs", where, event.delay
            )
        elif kind is EventKind.RETRY:
            self._log.warning("Retrying %s in %.1fs: %s", where, event.delay, event.message)
        elif kind is EventKind.TRANSLATED:
            self._log.info("Translated %s", where)
        elif kind is EventKind.FAILED:
            self._log.error("Failed to translate %s: %s", where, event.message)
