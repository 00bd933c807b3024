# SPDX-License-Identifier: Apache-2.0
"""Per-key translation decisions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from locale_sync.sync.fingerprint import fingerprint


class Action(str, Enum):
    """What to do with one (language, key) pair."""

    PASS_THROUGH = "pass_through"
    SKIP = "skip"
    TRANSLATE = "translate"


class Reason(str, Enum):
    """Why an action was chosen."""

    NOT_TRANSLATABLE = "Value is not a translatable string"
    FORCED = "Forced update"
    MISSING_OUTPUT_KEY = "No existing translation found"
    NO_CACHED_FINGERPRINT = "No fingerprint found in cache file"
    REFERENCE_CHANGED = "Reference value changed since last translation"
    UP_TO_DATE = "Up to date"


@dataclass(frozen=True)
class Decision:
    """Outcome of :func:`decide`.

    Attributes:
        action: Chosen action.
        reason: Human-readable cause, for logging.
        reference_fingerprint: Fingerprint of the reference value, or None
            for pass-through values.
    """

    action: Action
    reason: Reason
    reference_fingerprint: str | None = None

    @property
    def needs_translation(self) -> bool:
        return self.action is Action.TRANSLATE


def is_translatable(value: Any) -> bool:
    """Only non-blank strings are sent to a provider."""
    return isinstance(value, str) and bool(value.strip())


def decide(
    reference_value: Any,
    output_value: Any | None,
    cached_fingerprint: str | None,
    force: bool = False,
) -> Decision:
    """Decide whether a key must be (re)translated.

    Rules are checked in order; the first match wins. Hand edits to the
    translated value are not detected, only changes to the reference value.

    Args:
        reference_value: Value from the reference document.
        output_value: Existing translated value, or None if absent. An empty
            string counts as absent.
        cached_fingerprint: Fingerprint recorded when the key was last
            translated, or None.
        force: Retranslate every translatable value.

    Returns:
        The decision.
    """
    if not is_translatable(reference_value):
        return Decision(Action.PASS_THROUGH, Reason.NOT_TRANSLATABLE)

    current = fingerprint(reference_value)

    if force:
        return Decision(Action.TRANSLATE, Reason.FORCED, current)
    if output_value is None or output_value == "":
        return Decision(Action.TRANSLATE, Reason.MISSING_OUTPUT_KEY, current)
    if not cached_fingerprint:
        return Decision(Action.TRANSLATE, Reason.NO_CACHED_FINGERPRINT, current)
    if current != cached_fingerprint:
        return Decision(Action.TRANSLATE, Reason.REFERENCE_CHANGED, current)
    return Decision(Action.SKIP, Reason.UP_TO_DATE, current)
