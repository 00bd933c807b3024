# SPDX-License-Identifier: Apache-2.0
"""Synchronization error definitions."""

from __future__ import annotations


class SyncError(Exception):
    """Base exception for fatal synchronization errors."""

    default_stage = "sync"

    def __init__(
        self,
        message: str,
        stage: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage or self.default_stage
        self.cause = cause

    def __str__(self) -> str:
        text = f"[{self.stage}] {self.message}"
        if self.cause is not None:
            text += f" (caused by {type(self.cause).__name__}: {self.cause})"
        return text


class ReferenceLoadError(SyncError):
    """Reference document missing or not exporting a key/value mapping."""

    default_stage = "reference"


class StateLoadError(SyncError):
    """Existing cache or output file could not be read as a JSON object."""

    default_stage = "load"


class PersistenceError(SyncError):
    """Output or cache file could not be written."""

    default_stage = "persist"
