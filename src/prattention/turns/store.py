"""Persistent storage for per-PR documents.

Documents are plain JSON objects keyed by a PR identifier (typically its
URL) suffixed with the document kind, e.g.
``https://bitbucket.org/ws/repo/pull-requests/7_turn``.

Guarantees: the last successful ``store`` is durable, and reads within a
process see earlier writes. Nothing more.
"""

from __future__ import annotations

import copy
import json
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import quote

from prattention.exceptions import StoreError

_SCHEME_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.-]*)://(.*)$")


class DocumentStore(Protocol):
    def load(self, key: str) -> tuple[dict[str, Any] | None, bool]: ...

    def store(self, key: str, doc: dict[str, Any]) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-process store, mostly for tests and dry runs."""

    def __init__(self) -> None:
        self._docs: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def load(self, key: str) -> tuple[dict[str, Any] | None, bool]:
        with self._lock:
            doc = self._docs.get(key)
        if doc is None:
            return None, False
        return copy.deepcopy(doc), True

    def store(self, key: str, doc: dict[str, Any]) -> None:
        with self._lock:
            self._docs[key] = copy.deepcopy(doc)

    def delete(self, key: str) -> None:
        with self._lock:
            self._docs.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._docs)


class JsonFileStore:
    """One pretty-printed JSON file per document under a root directory.

    URL keys map to nested paths: ``https://host/a/b_turn`` is stored as
    ``<root>/https%3A/host/a/b_turn.json``. Keys with empty, ``.`` or
    ``..`` components are rejected. Writes go through a temporary file and
    an atomic rename, so a failed write never leaves a partial document.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self._path_cache: dict[str, Path] = {}

    def path_for(self, key: str) -> Path:
        path = self._path_cache.get(key)
        if path is not None:
            return path

        match = _SCHEME_RE.match(key)
        if match:
            parts = [match.group(1) + ":", *match.group(2).split("/")]
        else:
            parts = key.split("/")
            if parts[0].endswith(":"):
                raise StoreError(f"Invalid document key: '{key}'")
        if any(p in ("", ".", "..") for p in parts):
            raise StoreError(f"Invalid document key: '{key}'")

        names = [quote(p, safe="") for p in parts]
        path = self.root.joinpath(*names[:-1], names[-1] + ".json")
        self._path_cache[key] = path
        return path

    def load(self, key: str) -> tuple[dict[str, Any] | None, bool]:
        path = self.path_for(key)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None, False
        except UnicodeDecodeError as e:
            raise StoreError(f"Corrupt document {path}: {e}") from e
        except OSError as e:
            raise StoreError(f"Failed to read {path}: {e}") from e

        try:
            doc = json.loads(text)
        except json.JSONDecodeError as e:
            raise StoreError(f"Corrupt document {path}: {e}") from e
        if not isinstance(doc, dict):
            raise StoreError(f"Corrupt document {path}: not a JSON object")
        return doc, True

    def store(self, key: str, doc: dict[str, Any]) -> None:
        path = self.path_for(key)
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=path.name, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(doc, f, indent=2)
                f.write("\n")
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StoreError(f"Failed to write {path}: {e}") from e

    def delete(self, key: str) -> None:
        path = self.path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StoreError(f"Failed to delete {path}: {e}") from e
