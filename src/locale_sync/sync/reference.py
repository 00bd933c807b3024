# SPDX-License-Identifier: Apache-2.0
"""Reference document loading.

A reference document is a flat mapping of keys to values. Loaders turn a
source file into that mapping:

* :class:`JsonReferenceLoader` parses a strict JSON object.
* :class:`NodeModuleReferenceLoader` evaluates a JavaScript module with an
  external ``node`` process and reads one of its exports. This is the only
  loader that executes code, and it only ever runs a staged copy inside the
  run's scratch directory.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType, TracebackType
from typing import Any, Protocol, runtime_checkable

from locale_sync.sync.errors import ReferenceLoadError
from locale_sync.sync.fingerprint import fingerprint, normalize_mapping

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_NAME = "default"
JS_SUFFIXES = frozenset({".js", ".mjs"})

# Prints the named export of the module given as first argument as JSON.
_NODE_EXPORT_SCRIPT = (
    "const mod = await import(process.argv[1]);"
    "const value = mod[process.argv[2]];"
    "if (value === undefined) { process.exit(3); }"
    "process.stdout.write(JSON.stringify(value));"
)
_EXIT_MISSING_EXPORT = 3


@dataclass(frozen=True)
class ReferenceDocument:
    """Loaded reference document.

    Attributes:
        source: File the document was loaded from.
        values: Read-only mapping of normalized key to value.
        fingerprint: Fingerprint of the raw file bytes.
    """

    source: Path
    values: Mapping[str, Any]
    fingerprint: str

    def __len__(self) -> int:
        return len(self.values)


@runtime_checkable
class ReferenceLoader(Protocol):
    """Produces a key/value mapping from a source file."""

    def load(self, path: Path) -> dict[str, Any]: ...


class JsonReferenceLoader:
    """Load a reference document from a JSON object file."""

    def __init__(self, export_name: str = DEFAULT_EXPORT_NAME) -> None:
        self._export_name = export_name

    def load(self, path: Path) -> dict[str, Any]:
        """Parse ``path`` as JSON.

        With a non-default export name, the mapping is read from that
        top-level member instead of the whole object.

        Raises:
            ReferenceLoadError: If the file is not a JSON object.
        """
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ReferenceLoadError(f"{path} is not valid JSON", cause=exc) from exc
        if self._export_name != DEFAULT_EXPORT_NAME and isinstance(data, dict):
            if self._export_name not in data:
                raise ReferenceLoadError(
                    f"{path} has no member named '{self._export_name}'"
                )
            data = data[self._export_name]
        return _require_mapping(data, path)


class NodeModuleReferenceLoader:
    """Load a reference document exported by a JavaScript module.

    The module is copied into ``scratch_dir`` with an ``.mjs`` extension so
    Node treats it as an ES module, then imported by a short script that
    prints the requested export as JSON.
    """

    def __init__(
        self,
        scratch_dir: Path,
        export_name: str = DEFAULT_EXPORT_NAME,
        node_executable: str = "node",
        timeout: float = 30.0,
    ) -> None:
        self._scratch_dir = scratch_dir
        self._export_name = export_name
        self._node = node_executable
        self._timeout = timeout

    def stage(self, path: Path) -> Path:
        """Copy ``path`` into the scratch directory as an ``.mjs`` file."""
        name = path.name if path.suffix == ".mjs" else f"{path.name}.mjs"
        staged = self._scratch_dir / name
        shutil.copyfile(path, staged)
        return staged

    def load(self, path: Path) -> dict[str, Any]:
        """Evaluate the module and return its export.

        Raises:
            ReferenceLoadError: If Node is missing, the module fails to
                evaluate, or the export is absent or not an object.
        """
        staged = self.stage(path)
        command = [
            self._node,
            "--input-type=module",
            "-e",
            _NODE_EXPORT_SCRIPT,
            staged.as_uri(),
            self._export_name,
        ]
        logger.debug("Evaluating reference module %s", staged)
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                encoding="utf-8",
                timeout=self._timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ReferenceLoadError(
                f"Node.js executable '{self._node}' not found; "
                "it is required to load JavaScript reference files",
                cause=exc,
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise ReferenceLoadError(
                f"Evaluating {path} timed out after {self._timeout}s", cause=exc
            ) from exc

        if completed.returncode == _EXIT_MISSING_EXPORT:
            raise ReferenceLoadError(
                f"{path} does not export '{self._export_name}'"
            )
        if completed.returncode != 0:
            raise ReferenceLoadError(
                f"Evaluating {path} failed: {completed.stderr.strip()}"
            )

        try:
            data = json.loads(completed.stdout)
        except json.JSONDecodeError as exc:
            raise ReferenceLoadError(
                f"Export '{self._export_name}' of {path} is not JSON-serializable",
                cause=exc,
            ) from exc
        return _require_mapping(data, path)


def _require_mapping(data: Any, path: Path) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ReferenceLoadError(
            f"{path} must provide a key/value object, got {type(data).__name__}"
        )
    return data


def loader_for_path(
    path: Path,
    scratch_dir: Path,
    export_name: str = DEFAULT_EXPORT_NAME,
) -> ReferenceLoader:
    """Pick a loader by file suffix (JavaScript modules vs. JSON)."""
    if path.suffix.lower() in JS_SUFFIXES:
        return NodeModuleReferenceLoader(scratch_dir, export_name=export_name)
    return JsonReferenceLoader(export_name=export_name)


def load_reference(path: Path, loader: ReferenceLoader) -> ReferenceDocument:
    """Load and fingerprint the reference document.

    The fingerprint covers the raw file bytes, so formatting-only edits
    count as a change.

    Raises:
        ReferenceLoadError: If the file is missing or cannot be loaded.
    """
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ReferenceLoadError(f"Cannot read reference file {path}", cause=exc) from exc

    values = normalize_mapping(loader.load(path))
    for key, value in values.items():
        if not isinstance(value, str):
            logger.info("Value for reference key %r is not a string; passing it through", key)

    return ReferenceDocument(
        source=path,
        values=MappingProxyType(values),
        fingerprint=fingerprint(raw),
    )


class RunContext:
    """Resources owned by one synchronization run.

    Creates a private scratch directory on entry and removes it on every
    exit path, including cancellation.
    """

    def __init__(self, prefix: str = "locale-sync-") -> None:
        self._prefix = prefix
        self._scratch_dir: Path | None = None

    @property
    def scratch_dir(self) -> Path:
        if self._scratch_dir is None:
            raise RuntimeError("RunContext is not active")
        return self._scratch_dir

    def __enter__(self) -> RunContext:
        self._scratch_dir = Path(tempfile.mkdtemp(prefix=self._prefix))
        logger.debug("Created scratch directory %s", self._scratch_dir)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Remove the scratch directory (idempotent)."""
        if self._scratch_dir is None:
            return
        logger.debug("Cleaning up %s", self._scratch_dir)
        shutil.rmtree(self._scratch_dir, ignore_errors=True)
        self._scratch_dir = None
