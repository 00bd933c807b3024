# SPDX-License-Identifier: Apache-2.0
"""Incremental synchronization package."""

from .cache import LanguageCache, SyncCache
from .decision import Action, Decision, Reason, decide
from .engine import LanguageReport, SyncConfig, SyncEngine, SyncResult
from .errors import PersistenceError, ReferenceLoadError, StateLoadError, SyncError
from .fingerprint import fingerprint, normalize_key
from .progress import EventKind, LoggingProgress, ProgressCallback, SyncEvent
from .reference import (
    JsonReferenceLoader,
    NodeModuleReferenceLoader,
    ReferenceDocument,
    ReferenceLoader,
    RunContext,
)
from .scheduler import BackoffClock, LanguageScheduler, SchedulerState, WorkItem
from .writer import OutputWriter

__all__ = [
    "Action",
    "BackoffClock",
    "Decision",
    "EventKind",
    "JsonReferenceLoader",
    "LanguageCache",
    "LanguageReport",
    "LanguageScheduler",
    "LoggingProgress",
    "NodeModuleReferenceLoader",
    "OutputWriter",
    "PersistenceError",
    "ProgressCallback",
    "Reason",
    "ReferenceDocument",
    "ReferenceLoadError",
    "ReferenceLoader",
    "RunContext",
    "SchedulerState",
    "StateLoadError",
    "SyncCache",
    "SyncConfig",
    "SyncEngine",
    "SyncError",
    "SyncEvent",
    "SyncResult",
    "WorkItem",
    "decide",
    "fingerprint",
    "normalize_key",
]
